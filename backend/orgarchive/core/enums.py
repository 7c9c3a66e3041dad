"""Enumerations shared by models, schemas and the permission core."""

from enum import Enum


ADMIN_ROLE_NAME = "admin"


class TreeType(str, Enum):
    """The two independently maintained forests."""
    CATEGORY = "category"
    ORGANIGRAM = "organigram"


class PermissionLevel(str, Enum):
    """Level carried by an explicit grant. ``crud`` implies ``view``."""
    VIEW = "view"
    CRUD = "crud"


class EffectivePermission(str, Enum):
    """Permission a principal actually has on a node after resolution.

    ``INHERITED_STRUCTURAL`` only keeps a pruned tree connected and never
    authorizes anything.
    """
    NONE = "none"
    INHERITED_STRUCTURAL = "inherited-structural"
    VIEW = "view"
    CRUD = "crud"


class DisplayPermission(str, Enum):
    """Annotation attached to assembled tree nodes. Rendering hint only."""
    VIEW = "view"
    CRUD = "crud"
    DISPLAY_ADMIN = "display-admin"


class NodeKind(str, Enum):
    """Organigram node kinds.

    leaf-with-file       holds a file, no children
    container-with-file  holds a file and children
    container-only       holds children, never a file
    """
    LEAF_WITH_FILE = "leaf-with-file"
    CONTAINER_WITH_FILE = "container-with-file"
    CONTAINER_ONLY = "container-only"

    @property
    def accepts_children(self) -> bool:
        return self is not NodeKind.LEAF_WITH_FILE

    @property
    def accepts_file(self) -> bool:
        return self is not NodeKind.CONTAINER_ONLY


class CategoryMode(str, Enum):
    """Which part of the category path goes into a reference."""
    ALL = "all"
    LAST = "last"
    ROOT = "root"
