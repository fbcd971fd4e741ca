"""Database models - import all models here for Alembic discovery."""

from ctad_api.models.process import Contributor, ProcessDeclaration
from ctad_api.models.work import AudioReference, Declaration, DeclarationRevision, Work

__all__ = [
    "Work",
    "Declaration",
    "DeclarationRevision",
    "AudioReference",
    "ProcessDeclaration",
    "Contributor",
]
