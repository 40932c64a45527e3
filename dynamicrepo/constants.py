"""
DynamicRepo Constants.

This module contains constants used in DynamicRepo.
It includes the alias and path separators, the selection wildcard,
the reserved debug key for node clauses, filter operators,
order types, SQL order directions and the relationship
loading strategies treated as eager.
"""

# Alias strategy used to select and join attributes and tables
# e.g. order__articles__article_id
ALIAS_SEPARATOR = "__"

# Property path separator e.g articles.replacement.name
PATH_SEPARATOR = "."

# Selects every regular attribute of an entity, excluding relations
WILDCARD = "*"

# Reserved key holding node clauses in the debug projection of a query tree
CLAUSES = "__clauses"

# Node clauses
WHERE = "where"
ORDERING = "ordering"

# Filter operators
IN = "in"
CONTAINS = "contains"
STARTS_WITH = "startsWith"
ENDS_WITH = "endsWith"
LOWER = "<"
LOWER_OR_EQUAL = "<="
GREATER = ">"
GREATER_OR_EQUAL = ">="
EQUAL = "="
NOT_EQUAL = "!="

FILTER_OPERATORS = [
    CONTAINS,
    ENDS_WITH,
    EQUAL,
    GREATER,
    GREATER_OR_EQUAL,
    IN,
    LOWER,
    LOWER_OR_EQUAL,
    NOT_EQUAL,
    STARTS_WITH,
]

# Pattern matching operators
LIKE_OPERATORS = [
    CONTAINS,
    ENDS_WITH,
    STARTS_WITH,
]

# Order types
ASC = "asc"
DESC = "desc"

ORDER_TYPES = [
    ASC,
    DESC,
]

# SQL order directions
ORDER_DIRECTIONS = {
    ASC: "ASC",
    DESC: "DESC",
}

# In list values delimiter
IN_DELIMITER = ","

# Literals accepted for boolean columns, compared case-insensitively
BOOLEAN_LITERALS = {
    "true": True,
    "1": True,
    "false": False,
    "0": False,
}

# Pattern matching wildcard
LIKE_WILDCARD = "%"

# SQLAlchemy relationship loading strategies that load with the parent
EAGER_STRATEGIES = [
    "immediate",
    "joined",
    "selectin",
    "subquery",
]

# SQLAlchemy synonyms of the lazy argument of relationship()
LAZY_SYNONYMS = {
    False: "joined",
    True: "select",
    None: "noload",
}
