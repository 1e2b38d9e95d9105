"""CRUD operations for dossier entities using FastCRUD."""

from fastcrud import FastCRUD

from .models import Dossier

dossier_crud: FastCRUD = FastCRUD(Dossier)
