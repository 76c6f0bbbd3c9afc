"""Load model source text into a resolved ClassModelTable."""

from __future__ import annotations

from pathlib import Path
from typing import Union

from modelverify.class_model import ClassModelTable
from modelverify.errors import ModelError, ErrorKind, ModelLoadError
from modelverify.parser import parse
from modelverify.preloaded import preloaded_classes
from modelverify.resolver import resolve


def load_source(source: str, filename: str = "<stdin>") -> ClassModelTable:
    table = ClassModelTable(preloaded_classes())
    for cls in parse(source, filename):
        if cls.name in table:
            raise ModelLoadError(ModelError(
                kind=ErrorKind.NAME_ERROR,
                message=f"Class '{cls.name}' is already defined",
                location=cls.location,
            ))
        table.add(cls)
    return resolve(table)


def load_file(path: Union[str, Path]) -> ClassModelTable:
    path = Path(path)
    return load_source(path.read_text(encoding="utf-8"), str(path))
