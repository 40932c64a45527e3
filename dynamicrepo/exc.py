"""DynamicRepo Error classes."""


class InvalidArgumentError(Exception):
    """
    This error is raised when a query request references something
    the entity does not have. The whole query fails before any SQL is built.
    """

    def __init__(self, value):
        self.value = value

    def __str__(self):
        return repr(self.value)


class RelationNotFoundError(InvalidArgumentError):
    """
    This error is raised if a dotted selection, filter or ordering
    path starts with a name that is not a relation of the entity
    """


class FieldNotFoundError(InvalidArgumentError):
    """
    This error is raised if a selection, filter or ordering
    names neither a column nor a relation of the entity
    """


class InvalidOperatorError(InvalidArgumentError):
    """
    This error is raised if the filter operator is none of
    "=", "!=", "in", "contains", "startsWith", "endsWith",
    "<", "<=", ">" or ">="
    """


class EntityNotFoundError(Exception):
    def __init__(self, value):
        self.value = value

    def __str__(self):
        return repr(self.value)


class CatalogError(Exception):
    def __init__(self, value):
        self.value = value

    def __str__(self):
        return repr(self.value)
