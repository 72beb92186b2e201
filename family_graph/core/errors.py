"""
Error taxonomy shared by the traversal engine and the merge workflow.

Services raise these instead of transport errors; the HTTP layer decides
which status code each one becomes.
"""


class GraphError(Exception):
    """Base exception for graph service errors"""
    pass

class NotFoundError(GraphError):
    """Raised when required input references a record that does not exist"""
    pass

class InvalidArgumentError(GraphError):
    """Raised when an argument is out of range or otherwise unusable"""
    pass

class ConflictError(GraphError):
    """Raised when an operation conflicts with the current state of a record"""
    pass

class StoreFailureError(GraphError):
    """Raised when the relationship store fails to read or write"""
    pass

class TraversalTimeoutError(GraphError):
    """Raised when a traversal does not finish before its deadline"""
    pass
