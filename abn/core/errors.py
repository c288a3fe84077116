"""Service errors.

Raised by the services, turned into HTTP responses by the handlers registered
in abn.main. The message is what the client sees in the response body.
"""


class ServiceError(Exception):
    """Base exception for every error a request can end with."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFound(ServiceError):
    status_code = 404

    def __init__(self, entity: str, id):
        self.entity = entity
        self.id = id
        super().__init__(f"{entity} not found by id {id}")


class InvalidType(ServiceError):
    """Filter immediate doesn't match the type of the field it's compared to."""

    def __init__(self, field: str, got: str, expected: str):
        self.field = field
        self.got = got
        self.expected = expected
        super().__init__(f"field {field} compared to a {got} (expecting {expected})")


class InvalidComparator(ServiceError):
    def __init__(self, type_name: str, comparator: str):
        self.type_name = type_name
        self.comparator = comparator
        super().__init__(f"comparator {comparator} can't be used on a {type_name}")


class InvalidArity(ServiceError):
    def __init__(self, op: str, count: int):
        self.op = op
        self.count = count
        super().__init__(f"operator {op} takes exactly one child (got {count})")


class InvalidPattern(ServiceError):
    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"unsupported regex {pattern!r}: {reason}")


class DepMissing(ServiceError):
    """Dependency target doesn't exist (adding) or the edge doesn't (removing)."""

    def __init__(self, task_id: int, dep: int, removing: bool = False):
        self.task_id = task_id
        self.dep = dep
        if removing:
            message = "dependency couldn't be found"
        else:
            message = f"task {task_id} can't depend on nonexistant task with id {dep}"
        super().__init__(message)


class WrongType(ServiceError):
    def __init__(self, prop: str, expected: str):
        self.prop = prop
        self.expected = expected
        super().__init__(f"property {prop} has wrong type (expecting {expected})")


class PropMissing(ServiceError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no property by name {name}")


class StorageError(ServiceError):
    """Opaque database failure."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__("Internal server error")
