"""
Importers writing WordPress content into the content store.

This subpackage holds one importer per entity kind (categories, users,
posts/pages) plus the template/TV registry they share.  Each importer has an
``import_document`` method returning its id map and a ``rollback`` method
that undoes it using the same natural keys.
"""

from .category_importer import CategoryImporter
from .post_importer import PostImporter
from .tv_registry import TemplateRegistry
from .user_importer import UserImporter

__all__ = ["CategoryImporter", "PostImporter", "TemplateRegistry", "UserImporter"]
