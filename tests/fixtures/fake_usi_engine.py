"""
テスト用の偽USIエンジン

引数で応答を切り替える:
  --bestmove TOKEN   go に対して返す指し手（既定 7g7f）
  --usiok LINE       usi に対して返す行（既定 usiok）
  --info LINE        bestmove の前に出す info 行（複数指定可）
  --hang-on CMD      CMD を受け取ったら応答しない
  --exit-on CMD      CMD を受け取ったら終了する（--exit-code, --stderr）
  --log FILE         受け取ったコマンドを1行ずつ記録する
"""

import argparse
import sys
import time


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--bestmove", default="7g7f")
    parser.add_argument("--usiok", default="usiok")
    parser.add_argument("--info", action="append", default=[])
    parser.add_argument("--hang-on")
    parser.add_argument("--exit-on")
    parser.add_argument("--exit-code", type=int, default=3)
    parser.add_argument("--stderr", default="")
    parser.add_argument("--log")
    args = parser.parse_args()

    log = open(args.log, "a", encoding="utf-8") if args.log else None

    def reply(line):
        sys.stdout.write(line + "\n")
        sys.stdout.flush()

    for raw in sys.stdin:
        command = raw.strip()
        if log:
            log.write(command + "\n")
            log.flush()
        name = command.split(" ", 1)[0]

        if name == args.exit_on:
            if args.stderr:
                sys.stderr.write(args.stderr + "\n")
                sys.stderr.flush()
            sys.exit(args.exit_code)
        if name == args.hang_on:
            time.sleep(60)
            continue

        if command == "usi":
            reply("id name FakeEngine")
            reply(args.usiok)
        elif command == "isready":
            reply("readyok")
        elif name == "go":
            for line in args.info:
                reply(line)
            reply(f"bestmove {args.bestmove}")
        elif command == "quit":
            break


if __name__ == "__main__":
    main()
