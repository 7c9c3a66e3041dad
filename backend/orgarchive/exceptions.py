"""Custom exception hierarchy for OrgArchive."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Tree errors
    NODE_NOT_FOUND = "NODE_NOT_FOUND"
    INVALID_TARGET = "INVALID_TARGET"
    WOULD_CREATE_CYCLE = "WOULD_CREATE_CYCLE"
    TREE_INCONSISTENT = "TREE_INCONSISTENT"

    # Archive document errors
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"

    # Role errors
    ROLE_NOT_FOUND = "ROLE_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Auth & rate limiting
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"

    # Concurrency errors
    CONFLICT = "CONFLICT"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ArchiveException(Exception):
    """
    Base exception for all OrgArchive errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class NodeNotFoundError(ArchiveException):
    """Tree node (category or organigram node) not found."""

    def __init__(self, node_id: str, tree: str = "node"):
        super().__init__(
            f"{tree.capitalize()} not found: {node_id}",
            ErrorCode.NODE_NOT_FOUND,
            status_code=404,
            details={"node_id": node_id, "tree": tree}
        )


class CategoryNotFoundError(NodeNotFoundError):
    """Archive category not found."""

    def __init__(self, category_id: str):
        super().__init__(category_id, tree="category")


class OrganigramNodeNotFoundError(NodeNotFoundError):
    """Organigram node not found."""

    def __init__(self, node_id: str):
        super().__init__(node_id, tree="organigram node")


class InvalidTargetError(ArchiveException):
    """Re-parent target is missing or cannot hold children."""

    def __init__(self, target_id: str, reason: str = "Target node does not exist"):
        super().__init__(
            reason,
            ErrorCode.INVALID_TARGET,
            status_code=400,
            details={"target_id": target_id}
        )


class CycleError(ArchiveException):
    """Moving this node would make it its own ancestor."""

    def __init__(self, node_id: str, target_id: str):
        super().__init__(
            f"Would create circular reference: {node_id} -> {target_id}",
            ErrorCode.WOULD_CREATE_CYCLE,
            status_code=400,
            details={"node_id": node_id, "target_id": target_id}
        )


class TreeConsistencyError(ArchiveException):
    """A stored forest contains a cycle. Raised instead of looping forever."""

    def __init__(self, node_id: str):
        super().__init__(
            f"Tree is inconsistent: node {node_id} reached twice during traversal",
            ErrorCode.TREE_INCONSISTENT,
            status_code=500,
            details={"node_id": node_id}
        )


class DocumentNotFoundError(ArchiveException):
    """Archive document not found in database."""

    def __init__(self, doc_id: str):
        super().__init__(
            f"Document not found: {doc_id}",
            ErrorCode.DOCUMENT_NOT_FOUND,
            status_code=404,
            details={"doc_id": doc_id}
        )


class RoleNotFoundError(ArchiveException):
    """Role not found in database."""

    def __init__(self, role_id: str):
        super().__init__(
            f"Role not found: {role_id}",
            ErrorCode.ROLE_NOT_FOUND,
            status_code=404,
            details={"role_id": role_id}
        )


class ValidationError(ArchiveException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class AuthenticationError(ArchiveException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(ArchiveException):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class ConflictError(ArchiveException):
    """Request conflicts with existing state (duplicate name, reference...)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details=details
        )
