"""
templates.py

Document type catalogue and per-type verification templates.

This module loads ``configs/document_templates.yaml`` once and exposes it as
an immutable :class:`TemplateCatalog`:

- ``templates``       per document type: required-field regexes, common
                      phrases expected in a genuine document, and the
                      keywords used by the metadata-consistency check.
- ``fraud_patterns``  ordered list of (regex, risk weight, flag) triples used
                      by the fraud-pattern analyzer.

Config directory precedence:
  1) explicit ``config_dir`` / ``path`` argument
  2) environment variable DOCVERIFY_CONFIG_DIR
  3) <repo root>/configs

Types that have no template (most of :class:`DocumentType`) are valid
document types; the structure analyzer simply reports them as unknown.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

PathLike = Union[str, Path]

_DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"
TEMPLATES_FILENAME = "document_templates.yaml"


class ConfigError(RuntimeError):
    """Raised for configuration loading/validation errors."""


class DocumentType(str, Enum):
    """Document types known to the platform."""

    ACADEMIC_TRANSCRIPT = "academic_transcript"
    DEGREE_CERTIFICATE = "degree_certificate"
    DIPLOMA = "diploma"
    PASSPORT = "passport"
    NATIONAL_ID = "national_id"
    DRIVERS_LICENSE = "drivers_license"
    EMPLOYMENT_CERTIFICATE = "employment_certificate"
    EXPERIENCE_LETTER = "experience_letter"
    EXPERIENCE_CERTIFICATE = "experience_certificate"
    SALARY_CERTIFICATE = "salary_certificate"
    BIRTH_CERTIFICATE = "birth_certificate"
    MARRIAGE_CERTIFICATE = "marriage_certificate"
    BANK_STATEMENT = "bank_statement"
    TAX_DOCUMENT = "tax_document"
    MEDICAL_CERTIFICATE = "medical_certificate"
    VACCINATION_RECORD = "vaccination_record"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "DocumentType":
        """Map a free-form type id to a member; unknown ids become OTHER."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


DOCUMENT_CATEGORIES: Dict[DocumentType, str] = {
    DocumentType.ACADEMIC_TRANSCRIPT: "education",
    DocumentType.DEGREE_CERTIFICATE: "education",
    DocumentType.DIPLOMA: "education",
    DocumentType.PASSPORT: "identity",
    DocumentType.NATIONAL_ID: "identity",
    DocumentType.DRIVERS_LICENSE: "identity",
    DocumentType.EMPLOYMENT_CERTIFICATE: "employment",
    DocumentType.EXPERIENCE_LETTER: "employment",
    DocumentType.EXPERIENCE_CERTIFICATE: "employment",
    DocumentType.SALARY_CERTIFICATE: "employment",
    DocumentType.BIRTH_CERTIFICATE: "legal",
    DocumentType.MARRIAGE_CERTIFICATE: "legal",
    DocumentType.BANK_STATEMENT: "financial",
    DocumentType.TAX_DOCUMENT: "financial",
    DocumentType.MEDICAL_CERTIFICATE: "medical",
    DocumentType.VACCINATION_RECORD: "medical",
    DocumentType.OTHER: "other",
}

# First match wins, so the more specific phrases come before broad ones.
_SUGGESTION_RULES: Tuple[Tuple[DocumentType, Tuple[str, ...]], ...] = (
    (DocumentType.ACADEMIC_TRANSCRIPT, ("transcript", "grade", "gpa")),
    (DocumentType.DEGREE_CERTIFICATE, ("degree", "bachelor", "master", "phd")),
    (DocumentType.DIPLOMA, ("diploma", "certificate of completion")),
    (DocumentType.PASSPORT, ("passport",)),
    (DocumentType.NATIONAL_ID, ("national id", "identity card")),
    (DocumentType.DRIVERS_LICENSE, ("driver", "license")),
    (DocumentType.EMPLOYMENT_CERTIFICATE, ("employment", "work certificate")),
    (DocumentType.EXPERIENCE_LETTER, ("experience",)),
    (DocumentType.SALARY_CERTIFICATE, ("salary", "compensation")),
    (DocumentType.BIRTH_CERTIFICATE, ("birth certificate", "born on")),
    (DocumentType.MARRIAGE_CERTIFICATE, ("marriage", "married")),
    (DocumentType.BANK_STATEMENT, ("bank statement", "account balance")),
    (DocumentType.TAX_DOCUMENT, ("tax",)),
    (DocumentType.MEDICAL_CERTIFICATE, ("medical", "health certificate")),
    (DocumentType.VACCINATION_RECORD, ("vaccination", "vaccine")),
)


def suggest_document_type(text: Optional[str]) -> DocumentType:
    """Guess a document type from keywords in extracted text."""
    if not text:
        return DocumentType.OTHER
    lowered = text.lower()
    for doc_type, phrases in _SUGGESTION_RULES:
        if any(p in lowered for p in phrases):
            return doc_type
    return DocumentType.OTHER


# ---------------------------------------------------------------------------
# Catalog structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentTemplate:
    """Verification template of a single document type."""

    document_type: str
    required_fields: Tuple[Tuple[str, "re.Pattern[str]"], ...]
    common_phrases: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()

    @property
    def field_names(self) -> List[str]:
        return [name for name, _ in self.required_fields]


@dataclass(frozen=True)
class FraudPattern:
    flag: str
    pattern: "re.Pattern[str]"
    risk: float


@dataclass(frozen=True)
class TemplateCatalog:
    templates: Mapping[str, DocumentTemplate] = field(default_factory=dict)
    fraud_patterns: Tuple[FraudPattern, ...] = ()

    def template_for(self, document_type: Optional[str]) -> Optional[DocumentTemplate]:
        if not document_type:
            return None
        return self.templates.get(str(document_type).strip().lower())

    def keywords_for(self, document_type: Optional[str]) -> Tuple[str, ...]:
        template = self.template_for(document_type)
        return template.keywords if template else ()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def resolve_config_dir(config_dir: Optional[PathLike] = None) -> Path:
    """
    Resolve the configuration directory in a predictable way.

    Precedence:
      1) explicit config_dir argument
      2) environment variable DOCVERIFY_CONFIG_DIR
      3) <repo root>/configs
    """
    if config_dir is not None:
        base = Path(config_dir).expanduser().resolve()
    else:
        env = os.getenv("DOCVERIFY_CONFIG_DIR")
        base = Path(env).expanduser().resolve() if env else _DEFAULT_CONFIG_DIR
    if not base.is_dir():
        raise ConfigError(f"config directory does not exist or is not a directory: {base}")
    return base


def _compile(expr: Any, flags: Any, where: str) -> "re.Pattern[str]":
    re_flags = re.IGNORECASE if str(flags or "").lower() == "i" else 0
    try:
        return re.compile(str(expr), re_flags)
    except re.error as exc:
        raise ConfigError(f"invalid regex in {where}: {exc}") from exc


def _build_template(doc_type: str, raw: Mapping[str, Any]) -> DocumentTemplate:
    fields_raw = raw.get("required_fields") or {}
    if not isinstance(fields_raw, Mapping):
        raise ConfigError(f"templates.{doc_type}.required_fields must be a mapping")

    required = tuple(
        # required-field regexes are always case-insensitive
        (str(name), _compile(expr, "i", f"templates.{doc_type}.required_fields.{name}"))
        for name, expr in fields_raw.items()
    )
    return DocumentTemplate(
        document_type=doc_type,
        required_fields=required,
        common_phrases=tuple(str(p) for p in raw.get("common_phrases") or ()),
        keywords=tuple(str(k).lower() for k in raw.get("keywords") or ()),
    )


def parse_template_catalog(cfg: Mapping[str, Any]) -> TemplateCatalog:
    """Build a catalog from an already-parsed YAML mapping."""
    if not isinstance(cfg, Mapping):
        raise ConfigError("template config must be a mapping")

    templates_raw = cfg.get("templates") or {}
    if not isinstance(templates_raw, Mapping):
        raise ConfigError("'templates' must be a mapping of document type to template")
    templates = {
        str(doc_type).lower(): _build_template(str(doc_type).lower(), raw or {})
        for doc_type, raw in templates_raw.items()
    }

    patterns: List[FraudPattern] = []
    for i, raw in enumerate(cfg.get("fraud_patterns") or []):
        try:
            patterns.append(FraudPattern(
                flag=str(raw["flag"]),
                pattern=_compile(raw["pattern"], raw.get("flags"), f"fraud_patterns[{i}]"),
                risk=float(raw["risk"]),
            ))
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"fraud_patterns[{i}] is malformed: {exc}") from exc

    return TemplateCatalog(templates=templates, fraud_patterns=tuple(patterns))


def load_template_catalog(
    path: Optional[PathLike] = None,
    config_dir: Optional[PathLike] = None,
) -> TemplateCatalog:
    """Load the template catalog from YAML."""
    cfg_path = Path(path) if path is not None else resolve_config_dir(config_dir) / TEMPLATES_FILENAME
    if not cfg_path.is_file():
        raise ConfigError(f"Missing template config: {cfg_path}")
    with open(cfg_path, encoding="utf-8") as f:
        try:
            cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"could not parse {cfg_path}: {exc}") from exc
    return parse_template_catalog(cfg)


@lru_cache(maxsize=1)
def default_catalog() -> TemplateCatalog:
    """Process-wide catalog loaded from the default config directory."""
    return load_template_catalog()
