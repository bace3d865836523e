from .decorator import otherwise, tx_block
from .transform import Expansion, desugar
from .ir import Bind, Block, Let, Result, Statement
from .parse import parse_block, to_pattern

__all__ = [
    "tx_block",
    "otherwise",
    "desugar",
    "Expansion",
    "Bind",
    "Block",
    "Let",
    "Result",
    "Statement",
    "parse_block",
    "to_pattern",
]
