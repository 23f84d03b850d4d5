"""
Operator, direction, relation and column-kind constants shared by the parser
and all compilers.
"""

from enum import Enum


class Operation(str, Enum):
    EQ = "EQ"
    NEQ = "NEQ"
    LT = "LT"
    LTE = "LTE"
    GT = "GT"
    GTE = "GTE"
    LK = "LK"
    IN = "IN"
    IN_ALT = "IN_ALT"


class Direction(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class RelationKind(str, Enum):
    """How a field relates its entity to another table."""

    NONE = "none"
    DIRECT = "direct"
    MANY2MANY = "many2many"
    POLYMORPHIC = "polymorphic"


class RelationType(str, Enum):
    """Relationship type of a registered join."""

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_MANY = "many_to_many"
    POLYMORPHIC = "polymorphic"


class JoinType(str, Enum):
    INNER = "INNER JOIN"
    LEFT = "LEFT JOIN"
    RIGHT = "RIGHT JOIN"


class ColumnKind(str, Enum):
    STRING = "string"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    BOOL = "bool"
    TIME = "time"
    JSON = "json"


# Filter mini-language: operator token -> Operation
OPERATOR_MAP = {
    "=": Operation.EQ,
    "!=": Operation.NEQ,
    "<": Operation.LT,
    "<=": Operation.LTE,
    ">": Operation.GT,
    ">=": Operation.GTE,
    "~=": Operation.LK,
    "|=": Operation.IN,
    "*=": Operation.IN_ALT,
}

OPERATOR_CHARS = frozenset("=!<>~|*")

# Operation -> SQL comparator for the non-list operators
SQL_OPERATOR_MAP = {
    Operation.EQ: "=",
    Operation.NEQ: "<>",
    Operation.LT: "<",
    Operation.LTE: "<=",
    Operation.GT: ">",
    Operation.GTE: ">=",
    Operation.LK: "LIKE",
}

# Element separators for list operators
IN_SEPARATORS = {
    Operation.IN: "|",
    Operation.IN_ALT: "*",
}

NULL_SENTINELS = frozenset({"NULL", "null", "nil"})

SEARCH_PLACEHOLDER = "*"
