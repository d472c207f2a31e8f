from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Iterator

from pydantic import BaseModel, ValidationError

from tenantsync.core.errors import CatalogLoadError


DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "operation_catalog.json"


class CatalogOperationSpec(BaseModel):
    code: str
    name: str

    model_config = {"extra": "ignore"}


class CatalogModuleSpec(BaseModel):
    module_name: str
    operations: list[CatalogOperationSpec] = []

    model_config = {"extra": "ignore"}


class CatalogApplicationSpec(BaseModel):
    app_name: str
    modules: dict[str, CatalogModuleSpec] = {}

    model_config = {"extra": "ignore"}


class CatalogDocument(BaseModel):
    applications: dict[str, CatalogApplicationSpec]


@dataclass(frozen=True)
class CatalogOperation:
    # One authorizable/chargeable action, addressed as app.module.operation.
    app_code: str
    module_code: str
    module_name: str
    operation_code: str
    operation_name: str

    @property
    def qualified_code(self) -> str:
        return f"{self.app_code}.{self.module_code}.{self.operation_code}"

    @property
    def display_name(self) -> str:
        return f"{self.module_name} - {self.operation_name}"


class OperationCatalog:
    """Read-only view over the static application -> module -> operation tree."""

    def __init__(self, document: CatalogDocument) -> None:
        self._document = document

    def application_codes(self) -> list[str]:
        return sorted(self._document.applications)

    def has_application(self, app_code: str) -> bool:
        return app_code in self._document.applications

    def iter_operations(self, app_code: str) -> Iterator[CatalogOperation]:
        application = self._document.applications.get(app_code)
        if application is None:
            return
        for module_code, module in application.modules.items():
            for operation in module.operations:
                yield CatalogOperation(
                    app_code=app_code,
                    module_code=module_code,
                    module_name=module.module_name,
                    operation_code=operation.code,
                    operation_name=operation.name,
                )

    @classmethod
    def from_dict(cls, payload: dict) -> "OperationCatalog":
        try:
            return cls(CatalogDocument.model_validate(payload))
        except ValidationError as exc:
            raise CatalogLoadError("Operation catalog failed validation", details={"errors": exc.errors()}) from exc


def load_catalog(path: str | Path | None = None) -> OperationCatalog:
    # Load once at process start; the catalog never changes at runtime.
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
    try:
        raw = json.loads(catalog_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CatalogLoadError(f"Operation catalog not found: {catalog_path}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogLoadError(f"Operation catalog is not valid JSON: {catalog_path}") from exc
    if not isinstance(raw, dict):
        raise CatalogLoadError(f"Operation catalog root must be an object: {catalog_path}")
    return OperationCatalog.from_dict(raw)
