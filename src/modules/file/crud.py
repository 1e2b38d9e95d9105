"""CRUD operations for file entities using FastCRUD."""

from fastcrud import FastCRUD

from .models import File

file_crud: FastCRUD = FastCRUD(File)
