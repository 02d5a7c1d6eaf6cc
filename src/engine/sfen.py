"""
SFEN形式の局面表現とUSI形式の指し手の変換

盤面: 上の段（a段=0行目）から順に '/' で区切る。空きマスの連続は数字、
      先手の駒は大文字・後手の駒は小文字、成駒は '+' を前に付ける
例: lnsgkgsnl/1r5b1/ppppppppp/9/9/9/PPPPPPPPP/1B5R1/LNSGKGSNL b - 1
"""

import re
from typing import Dict, Optional

from .board import Board, Hands, Position, BOARD_SIZE
from .move import Move, Promotion, Square
from .piece import HAND_ORDER, Piece, PieceType, Player

RANK_LETTERS = "abcdefghi"
# 手数は固定値を送る
MOVE_NUMBER_PLACEHOLDER = "1"
# bestmove の特殊トークン（指し手ではない）
SPECIAL_BESTMOVES = ("resign", "win", "none")

_HAND_TOKEN = re.compile(r"(\d*)([RBGSNLPrbgsnlp])")


def _piece_letter(piece: Piece) -> str:
    letter = piece.piece_type.value
    if piece.owner == Player.WHITE:
        letter = letter.lower()
    return f"+{letter}" if piece.promoted else letter


def board_to_sfen(board: Board) -> str:
    """盤面部分をSFENに変換"""
    ranks = []
    for row in range(BOARD_SIZE):
        empty = 0
        line = ""
        for col in range(BOARD_SIZE):
            piece = board.get_piece((row, col))
            if piece is None:
                empty += 1
                continue
            if empty > 0:
                line += str(empty)
                empty = 0
            line += _piece_letter(piece)
        if empty > 0:
            line += str(empty)
        ranks.append(line or str(BOARD_SIZE))
    return "/".join(ranks)


def hands_to_sfen(hands: Hands) -> str:
    """持ち駒部分をSFENに変換（先手の大文字 → 後手の小文字、なければ '-'）"""
    out = ""
    for player in (Player.BLACK, Player.WHITE):
        for piece_type in HAND_ORDER:
            count = hands.count(player, piece_type)
            if count <= 0:
                continue
            letter = piece_type.value if player == Player.BLACK else piece_type.value.lower()
            out += f"{count}{letter}" if count > 1 else letter
    return out or "-"


def to_sfen(position: Position) -> str:
    """局面をSFEN文字列に変換"""
    return " ".join([
        board_to_sfen(position.board),
        position.turn.value,
        hands_to_sfen(position.hands),
        MOVE_NUMBER_PLACEHOLDER,
    ])


def _parse_board(text: str) -> Board:
    ranks = text.split("/")
    if len(ranks) != BOARD_SIZE:
        raise ValueError(f"SFENの段数が不正です: {text}")

    pieces: Dict[Square, Piece] = {}
    for row, rank in enumerate(ranks):
        col = 0
        promoted = False
        for char in rank:
            if char.isdigit():
                if promoted:
                    raise ValueError(f"SFENの成りの指定が不正です: {rank}")
                col += int(char)
                continue
            if char == "+":
                if promoted:
                    raise ValueError(f"SFENの成りの指定が不正です: {rank}")
                promoted = True
                continue
            piece_type = PieceType(char.upper())
            owner = Player.BLACK if char.isupper() else Player.WHITE
            if col >= BOARD_SIZE:
                raise ValueError(f"SFENの筋数が不正です: {rank}")
            piece = Piece(piece_type, owner)
            if promoted:
                if not piece.can_promote():
                    raise ValueError(f"成れない駒です: {rank}")
                piece = piece.promote()
            pieces[(row, col)] = piece
            promoted = False
            col += 1
        if promoted:
            raise ValueError(f"SFENの成りの指定が不正です: {rank}")
        if col != BOARD_SIZE:
            raise ValueError(f"SFENの筋数が不正です: {rank}")
    return Board.from_pieces(pieces)


def _parse_hands(text: str) -> Hands:
    if text == "-":
        return Hands.empty()
    counts: Dict[Player, Dict[PieceType, int]] = {Player.BLACK: {}, Player.WHITE: {}}
    consumed = 0
    for match in _HAND_TOKEN.finditer(text):
        if match.start() != consumed:
            break
        consumed = match.end()
        letter = match.group(2)
        owner = Player.BLACK if letter.isupper() else Player.WHITE
        piece_type = PieceType(letter.upper())
        counts[owner][piece_type] = counts[owner].get(piece_type, 0) + int(match.group(1) or 1)
    if consumed != len(text):
        raise ValueError(f"SFENの持ち駒が不正です: {text}")
    return Hands.from_counts(counts[Player.BLACK], counts[Player.WHITE])


def parse_sfen(sfen: str) -> Position:
    """SFEN文字列から局面を復元（手数は無視する）"""
    fields = sfen.split()
    if fields and fields[0] == "sfen":
        fields = fields[1:]
    if len(fields) < 3:
        raise ValueError(f"SFENが不正です: {sfen}")
    board = _parse_board(fields[0])
    turn = Player(fields[1])
    hands = _parse_hands(fields[2])
    return Position(board, hands, turn)


def square_to_usi(pos: Square) -> str:
    """(行, 列) をUSIのマス表記（例: 7g）に変換"""
    row, col = pos
    return f"{BOARD_SIZE - col}{RANK_LETTERS[row]}"


def parse_usi_square(text: str) -> Optional[Square]:
    """USIのマス表記を (行, 列) に変換（不正ならNone）"""
    if len(text) != 2 or text[0] not in "123456789" or text[1] not in RANK_LETTERS:
        return None
    return RANK_LETTERS.index(text[1]), BOARD_SIZE - int(text[0])


def move_to_usi(move: Move) -> str:
    """手をUSI形式（7g7f, 2b3c+, P*5e）に変換"""
    if move.is_drop:
        return f"{move.piece_type.value}*{square_to_usi(move.to_pos)}"
    suffix = "+" if move.promotion == Promotion.MUST else ""
    return f"{square_to_usi(move.from_pos)}{square_to_usi(move.to_pos)}{suffix}"


def parse_usi_move(token: str) -> Optional[Move]:
    """
    USI形式の指し手を手に変換
    resign / win / none や形式不正のトークンはNone（指し手なし）
    """
    token = (token or "").strip()
    if not token or token in SPECIAL_BESTMOVES:
        return None

    if "*" in token:
        letter, _, square = token.partition("*")
        to_pos = parse_usi_square(square[:2])
        try:
            piece_type = PieceType(letter.upper())
        except ValueError:
            return None
        if to_pos is None or piece_type == PieceType.KING:
            return None
        return Move.create_drop_move(to_pos, piece_type)

    promoted = token.endswith("+")
    core = token[:-1] if promoted else token
    if len(core) < 4:
        return None
    from_pos = parse_usi_square(core[0:2])
    to_pos = parse_usi_square(core[2:4])
    if from_pos is None or to_pos is None:
        return None
    return Move.create_normal_move(
        from_pos, to_pos, Promotion.MUST if promoted else Promotion.NONE
    )

