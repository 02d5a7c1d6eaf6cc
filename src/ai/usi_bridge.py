"""
外部USIエンジンとの通信

1リクエストにつき1プロセスを起動し、次の順でやり取りする。
  usi → usiok → setoption (USI_Hash, Threads) → isready → readyok
  → position sfen ... → go movetime ... → bestmove
どの経路で終わっても quit を送り、プロセスを終了させて回収する。
"""

import asyncio
import contextlib
import logging
import os
import re
from typing import Callable, List, Optional, Tuple

from ..config import EngineSettings
from ..engine.board import Position
from ..engine.move import Move
from ..engine.sfen import parse_usi_move, to_sfen
from ..errors import (
    EngineBridgeError,
    EngineExitedError,
    EngineSpawnError,
    EngineTimeoutError,
)

logger = logging.getLogger(__name__)

MODE_SELECT = "bestmove"
MODE_EVALUATE = "evaluate"

# 詰みの手数を評価値に換算するときの基準値
MATE_SCORE_BASE = 100000

_SCORE_PATTERN = re.compile(r"\bscore\s+(cp|mate)\s+([+-]?\d+)")


def compute_movetime(mode: str, depth: int, time_ms: int) -> int:
    """探索の深さと持ち時間から go movetime の値（ミリ秒）を決める"""
    depth = max(1, depth)
    time_ms = max(200, time_ms)
    depth_scale = max(1, depth - 4)
    if mode == MODE_EVALUATE:
        return min(max(time_ms * max(2, depth_scale), 2000), 5000)
    return min(time_ms * depth_scale, 2000)


def parse_score(line: str) -> Optional[int]:
    """
    info 行から評価値を取り出す
    score mate n は sign(n) × (100000 - |n|) に換算する
    """
    match = _SCORE_PATTERN.search(line)
    if not match:
        return None
    kind, value = match.group(1), int(match.group(2))
    if kind == "cp":
        return value
    sign = 1 if value >= 0 else -1
    return sign * (MATE_SCORE_BASE - abs(value))


class UsiEngine:
    """
    USIエンジンのプロセス1つ分

    async with で使う。入るときに起動と usi / isready のハンドシェイクを行い、
    出るときは例外の有無にかかわらず quit を送ってプロセスを終了させる。

    Args:
        path: エンジンの実行ファイル
        hash_mb: USI_Hash の値
        threads: Threads の値
        handshake_timeout_ms: usiok / readyok の待ち時間
    """

    def __init__(
        self,
        path: str,
        hash_mb: int = 64,
        threads: int = 1,
        handshake_timeout_ms: int = 8000
    ):
        self.path = path
        self.hash_mb = hash_mb
        self.threads = threads
        self.handshake_timeout_ms = handshake_timeout_ms
        self._process: Optional[asyncio.subprocess.Process] = None
        self._stderr_chunks: List[str] = []
        self._stderr_task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> 'UsiEngine':
        await self.start()
        try:
            await self.handshake()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
        return False

    async def start(self) -> None:
        """エンジンのディレクトリをカレントにしてプロセスを起動する"""
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.path,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=os.path.dirname(os.path.abspath(self.path)),
            )
        except OSError as e:
            raise EngineSpawnError("エンジンを起動できませんでした。", detail=str(e))
        self._stderr_task = asyncio.create_task(self._drain_stderr())
        logger.debug("エンジン起動: %s (pid=%s)", self.path, self._process.pid)

    async def _drain_stderr(self) -> None:
        stream = self._process.stderr
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                return
            self._stderr_chunks.append(chunk.decode(errors="replace"))

    async def _settle(self, timeout: float = 1.0) -> None:
        """終了しかけているプロセスの終了コードと標準エラー出力を回収する"""
        waiters = [asyncio.ensure_future(self._process.wait())]
        if self._stderr_task is not None:
            waiters.append(self._stderr_task)
        await asyncio.wait(waiters, timeout=timeout)

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    def diagnostics(self, fallback: str = "") -> str:
        """失敗時の診断情報（標準エラー出力 → 終了コード → fallback の順）"""
        stderr = "".join(self._stderr_chunks).strip()
        if stderr:
            return stderr
        if self.returncode is not None:
            return f"exit code: {self.returncode}"
        return fallback

    async def send(self, line: str) -> None:
        """1行送る"""
        logger.debug(">> %s", line)
        try:
            self._process.stdin.write(f"{line}\n".encode())
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise EngineExitedError("エンジンへの送信に失敗しました。", detail=self.diagnostics(str(e)))

    async def wait_for_line(
        self,
        matches: Callable[[str], bool],
        timeout_ms: int,
        on_line: Optional[Callable[[str], None]] = None
    ) -> str:
        """
        条件に合う行が来るまで読む
        期限切れは EngineTimeoutError、途中でプロセスが終わったら EngineExitedError
        長すぎる行は EngineBridgeError
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000.0
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise EngineTimeoutError("timeout", detail=self.diagnostics("timeout"))
            try:
                raw = await asyncio.wait_for(self._process.stdout.readline(), remaining)
            except asyncio.TimeoutError:
                raise EngineTimeoutError("timeout", detail=self.diagnostics("timeout"))
            except ValueError as e:
                # StreamReader の上限を超える長さの行
                raise EngineBridgeError("エンジンの出力行が長すぎます。", detail=self.diagnostics(str(e)))
            if not raw:
                await self._settle()
                raise EngineExitedError(
                    "エンジンが応答の途中で終了しました。",
                    detail=self.diagnostics("stdout closed"),
                )
            line = raw.decode(errors="replace").rstrip("\r\n")
            logger.debug("<< %s", line)
            if on_line is not None:
                on_line(line)
            if matches(line):
                return line

    async def handshake(self) -> None:
        await self.send("usi")
        await self.wait_for_line(lambda line: line.strip() == "usiok", self.handshake_timeout_ms)
        await self.send(f"setoption name USI_Hash value {self.hash_mb}")
        await self.send(f"setoption name Threads value {self.threads}")
        await self.send("isready")
        await self.wait_for_line(lambda line: line.strip() == "readyok", self.handshake_timeout_ms)

    async def go(self, sfen: str, movetime_ms: int, grace_ms: int = 8000) -> Tuple[str, Optional[int]]:
        """
        局面を送って探索させる
        返り値: (bestmove の指し手トークン, bestmove までに来た最後の評価値)
        """
        last_score: Optional[int] = None

        def on_line(line: str) -> None:
            nonlocal last_score
            if not line.startswith("info"):
                return
            score = parse_score(line)
            if score is not None:
                last_score = score

        await self.send(f"position sfen {sfen}")
        await self.send(f"go movetime {movetime_ms}")
        best_line = await self.wait_for_line(
            lambda line: re.match(r"^bestmove\s+", line) is not None,
            movetime_ms + grace_ms,
            on_line,
        )
        tokens = best_line.split()
        best = tokens[1] if len(tokens) > 1 else ""
        return best, last_score

    async def close(self) -> None:
        """quit を送り、まだ動いていれば強制終了して回収する"""
        process = self._process
        if process is None:
            return
        if process.returncode is None:
            with contextlib.suppress(EngineBridgeError, RuntimeError):
                await self.send("quit")
            with contextlib.suppress(ProcessLookupError):
                process.kill()
        await process.wait()
        if self._stderr_task is not None:
            self._stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._stderr_task
        logger.debug("エンジン終了: exit code %s", process.returncode)


async def request_best_move(
    settings: EngineSettings,
    position: Position,
    depth: int,
    time_ms: int
) -> Optional[Move]:
    """
    エンジンに最善手を問い合わせる
    resign / win / none などはNone。設定エラーは ConfigurationError、通信失敗は EngineBridgeError
    """
    path = settings.validate_engine_path()
    movetime = compute_movetime(MODE_SELECT, depth, time_ms)
    async with UsiEngine(path, hash_mb=64, handshake_timeout_ms=settings.handshake_timeout_ms) as engine:
        best, _ = await engine.go(to_sfen(position), movetime, settings.bestmove_grace_ms)
    logger.info("エンジンの最善手: %s", best)
    return parse_usi_move(best)


async def request_evaluation(
    settings: EngineSettings,
    position: Position,
    depth: int,
    time_ms: int
) -> int:
    """
    エンジンに局面の評価値（手番側から見たcp）を問い合わせる
    評価値が得られなければ EngineBridgeError
    """
    path = settings.validate_engine_path()
    movetime = compute_movetime(MODE_EVALUATE, depth, time_ms)
    async with UsiEngine(path, hash_mb=16, handshake_timeout_ms=settings.handshake_timeout_ms) as engine:
        _, score = await engine.go(to_sfen(position), movetime, settings.bestmove_grace_ms)
    if score is None:
        raise EngineBridgeError("評価値を取得できませんでした。")
    return score
