"""CRUD operations for version entities using FastCRUD."""

from fastcrud import FastCRUD

from .models import Version

version_crud: FastCRUD = FastCRUD(Version)
