"""Host layer: load models and verify every class they declare."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from modelverify.analysis_logger import null_logger
from modelverify.class_model import ClassModelTable
from modelverify.config import VerifierConfig
from modelverify.loader import load_file, load_source
from modelverify.result import VerificationResult
from modelverify.verification.verifier import Verifier


def verify_table(
    table: ClassModelTable,
    config: Optional[VerifierConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> list[VerificationResult]:
    """One result per non-preloaded class, in declaration order."""
    config = config or VerifierConfig()
    logger = logger or null_logger()
    return [Verifier(cls, table, config, logger).run() for cls in table.verifiable()]


def verify_source(
    source: str,
    config: Optional[VerifierConfig] = None,
    logger: Optional[logging.Logger] = None,
    filename: str = "<stdin>",
) -> list[VerificationResult]:
    return verify_table(load_source(source, filename), config, logger)


def verify_file(
    path: Union[str, Path],
    config: Optional[VerifierConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> list[VerificationResult]:
    return verify_table(load_file(path), config, logger)
