"""High-level API + CLI for the document verification ledger."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from analyzers import ConfigError, load_template_catalog, suggest_document_type
from analyzers.templates import DOCUMENT_CATEGORIES
from analyzers.utils import save_json
from ledger import ChainIntegrityViolation, Ledger, LedgerService, build_sealer
from pipeline import (
    DocumentRecord,
    InMemoryDocumentStore,
    OcrTextExtractor,
    VerificationError,
    VerificationOrchestrator,
    build_ledger,
    compute_file_hash,
    guess_mime_type,
    load_settings,
)

DEFAULT_LEDGER_PATH = Path("outputs/ledger.json")

logger = logging.getLogger(__name__)


class DocumentVerifierAPI:
    """High-level API usable from the CLI or notebooks.

    The ledger is kept in memory and, when ``ledger_path`` is set, exported
    to that JSON file after every write and restored from it on start.
    """

    def __init__(
        self,
        config_dir: str | Path | None = None,
        ledger_path: str | Path | None = DEFAULT_LEDGER_PATH,
    ):
        self.settings = load_settings(config_dir=config_dir)
        self.catalog = load_template_catalog(config_dir=config_dir)
        self.ledger_path = Path(ledger_path) if ledger_path is not None else None
        self.ledger = self._load_ledger()
        self.ledger_service = LedgerService(self.ledger)
        self.documents = InMemoryDocumentStore()
        self.extractor = OcrTextExtractor()
        self.orchestrator = VerificationOrchestrator.from_settings(
            self.settings,
            self.documents,
            extractor=self.extractor,
            ledger_service=self.ledger_service,
            catalog=self.catalog,
        )

    def _load_ledger(self) -> Ledger:
        if self.ledger_path is None or not self.ledger_path.is_file():
            return build_ledger(self.settings)
        with open(self.ledger_path, encoding="utf-8") as f:
            blocks = json.load(f)
        return Ledger.restore(
            blocks,
            sealer=build_sealer(self.settings.sealer, self.settings.difficulty),
            mining_timeout=self.settings.mining_timeout_s,
        )

    def _save_ledger(self) -> None:
        if self.ledger_path is None:
            return
        save_json(self.ledger.export(), self.ledger_path)

    def _add_document(
        self,
        file_path: Path,
        document_type: str | None,
        metadata: dict[str, Any] | None,
    ) -> DocumentRecord:
        content_hash = compute_file_hash(file_path)
        doc = DocumentRecord(
            id=f"{file_path.stem}-{content_hash[:12]}",
            file_path=file_path,
            declared_type=document_type,
            metadata=dict(metadata or {}),
            content_hash=content_hash,
        )
        return self.documents.add(doc)

    def verify_file(
        self,
        file_path: str | Path,
        *,
        document_type: str | None = None,
        metadata: dict[str, Any] | None = None,
        verifier_id: str | None = None,
        notes: str = "",
    ) -> dict[str, Any]:
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        doc = self._add_document(path, document_type, metadata)
        record = self.orchestrator.verify(doc.id, verifier_id=verifier_id, notes=notes, force_re_verify=True)
        self._save_ledger()
        return record.to_dict()

    def register_file(
        self,
        file_path: str | Path,
        *,
        issuer_id: str | None = None,
        recipient_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        content_hash = compute_file_hash(path)
        receipt = self.ledger_service.register_document(
            document_id=f"{path.stem}-{content_hash[:12]}",
            content_hash=content_hash,
            issuer_id=issuer_id,
            recipient_id=recipient_id,
            metadata={"fileName": path.name, "mimeType": guess_mime_type(path), **(metadata or {})},
        )
        self._save_ledger()
        out = receipt.to_dict()
        out["documentHash"] = content_hash
        return out

    def lookup(self, content_hash: str) -> dict[str, Any]:
        return self.ledger_service.lookup(content_hash)

    def ledger_stats(self) -> dict[str, Any]:
        return self.ledger_service.stats()

    def validate_ledger(self, strict: bool = False) -> dict[str, Any]:
        return self.ledger_service.validate_chain(strict=strict)

    def suggest_type(self, file_path: str | Path) -> dict[str, Any]:
        extraction = self.extractor.extract(file_path)
        if not extraction.success:
            return {"success": False, "error": extraction.error}
        suggested = suggest_document_type(extraction.text)
        return {
            "success": True,
            "document_type": suggested.value,
            "category": DOCUMENT_CATEGORIES[suggested],
            "confidence": extraction.confidence,
        }


# -------------------- CLI commands --------------------

def _print(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _parse_metadata(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("--metadata must be a JSON object")
    return data


def _api(args: argparse.Namespace) -> DocumentVerifierAPI:
    return DocumentVerifierAPI(config_dir=args.config_dir, ledger_path=args.ledger)


def cmd_verify(args: argparse.Namespace) -> int:
    out = _api(args).verify_file(
        args.file,
        document_type=args.type,
        metadata=_parse_metadata(args.metadata),
        verifier_id=args.verifier,
        notes=args.notes,
    )
    _print(out)
    return 0


def cmd_register(args: argparse.Namespace) -> int:
    out = _api(args).register_file(
        args.file,
        issuer_id=args.issuer,
        recipient_id=args.recipient,
        metadata=_parse_metadata(args.metadata),
    )
    _print(out)
    return 0


def cmd_ledger_stats(args: argparse.Namespace) -> int:
    _print(_api(args).ledger_stats())
    return 0


def cmd_ledger_validate(args: argparse.Namespace) -> int:
    result = _api(args).validate_ledger()
    _print(result)
    return 0 if result["valid"] else 1


def cmd_lookup(args: argparse.Namespace) -> int:
    result = _api(args).lookup(args.hash)
    _print(result)
    return 0 if result["found"] else 1


def cmd_suggest_type(args: argparse.Namespace) -> int:
    _print(_api(args).suggest_type(args.file))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Document verification with a hash-chained ledger")
    parser.add_argument("--config-dir", default=None, help="Directory with the YAML configs")
    parser.add_argument("--ledger", default=str(DEFAULT_LEDGER_PATH), help="Ledger JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    verify_p = sub.add_parser("verify", help="Score a document and record the verification")
    verify_p.add_argument("file", help="Document file (.txt, .png, .jpg, .jpeg)")
    verify_p.add_argument("--type", default=None, help="Declared document type, e.g. birth_certificate")
    verify_p.add_argument("--metadata", default=None, help="Document metadata as a JSON object")
    verify_p.add_argument("--verifier", default=None, help="Verifier id")
    verify_p.add_argument("--notes", default="", help="Free-text notes stored with the record")

    register_p = sub.add_parser("register", help="Register a document's content hash on the ledger")
    register_p.add_argument("file")
    register_p.add_argument("--issuer", default=None)
    register_p.add_argument("--recipient", default=None)
    register_p.add_argument("--metadata", default=None, help="Extra metadata as a JSON object")

    sub.add_parser("ledger-stats", help="Block and transaction counts")
    sub.add_parser("ledger-validate", help="Check every block hash and link")

    lookup_p = sub.add_parser("lookup", help="Find the registration of a content hash")
    lookup_p.add_argument("hash")

    suggest_p = sub.add_parser("suggest-type", help="Guess the document type from its text")
    suggest_p.add_argument("file")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "verify": cmd_verify,
        "register": cmd_register,
        "ledger-stats": cmd_ledger_stats,
        "ledger-validate": cmd_ledger_validate,
        "lookup": cmd_lookup,
        "suggest-type": cmd_suggest_type,
    }
    try:
        return commands[args.command](args)
    except (VerificationError, ChainIntegrityViolation, ConfigError, FileNotFoundError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
