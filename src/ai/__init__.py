"""
着手選択 - 静的評価・ローカル探索・外部USIエンジン
"""

from .evaluator import Evaluator, EvalWeights, DEFAULT_WEIGHTS
from .search import SearchEngine, SearchResult, minimax, order_moves

__all__ = [
    'Evaluator',
    'EvalWeights',
    'DEFAULT_WEIGHTS',
    'SearchEngine',
    'SearchResult',
    'minimax',
    'order_moves',
]
