"""Tests for YAML configuration loading."""

import pytest

from analyzers import ConfigError, load_template_catalog
from analyzers.templates import parse_template_catalog, resolve_config_dir
from ledger import ProofOfWorkSealer, TrivialSealer
from pipeline import build_ledger, load_settings
from pipeline.config import parse_settings


def test_default_settings_file():
    settings = load_settings()
    assert settings.sealer == "proof_of_work"
    assert settings.difficulty == 2
    assert settings.bulk_limit == 50
    assert settings.max_workers == 5
    assert settings.default_verifier_id == "system"


def test_env_var_overrides_config_dir(tmp_path, monkeypatch):
    (tmp_path / "verification.yaml").write_text(
        "ledger:\n  sealer: trivial\n  mining_timeout_s: null\nanalysis:\n  bulk_limit: 10\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("DOCVERIFY_CONFIG_DIR", str(tmp_path))
    assert resolve_config_dir() == tmp_path.resolve()

    settings = load_settings()
    assert settings.sealer == "trivial"
    assert settings.mining_timeout_s is None
    assert settings.bulk_limit == 10
    assert settings.difficulty == 2


def test_missing_config_dir(tmp_path):
    with pytest.raises(ConfigError):
        resolve_config_dir(tmp_path / "nope")


def test_malformed_settings():
    with pytest.raises(ConfigError):
        parse_settings({"ledger": {"sealer": "proof_of_stake"}})
    with pytest.raises(ConfigError):
        parse_settings({"ledger": {"difficulty": "hard"}})
    with pytest.raises(ConfigError):
        parse_settings({"analysis": ["not", "a", "mapping"]})


def test_unparseable_yaml(tmp_path):
    bad = tmp_path / "verification.yaml"
    bad.write_text("ledger: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(path=bad)


def test_build_ledger_uses_configured_sealer():
    assert isinstance(build_ledger(parse_settings({"ledger": {"sealer": "trivial"}})).sealer, TrivialSealer)
    ledger = build_ledger(parse_settings({"ledger": {"difficulty": 3}}))
    assert isinstance(ledger.sealer, ProofOfWorkSealer)
    assert ledger.sealer.difficulty == 3


def test_default_template_catalog():
    catalog = load_template_catalog()
    assert set(catalog.templates) == {"birth_certificate", "academic_transcript", "experience_certificate"}
    assert [fp.flag for fp in catalog.fraud_patterns] == [
        "COPY_WATERMARK", "TEST_DOCUMENT", "REDACTED_CONTENT", "EDITING_TRACES",
    ]
    assert [fp.risk for fp in catalog.fraud_patterns] == [30, 40, 20, 50]
    birth = catalog.template_for("Birth_Certificate")
    assert birth.field_names == ["name", "date", "place"]
    assert catalog.keywords_for("birth_certificate") == ("birth", "certificate", "born")
    assert catalog.template_for("passport") is None


def test_template_catalog_rejects_bad_regex():
    with pytest.raises(ConfigError):
        parse_template_catalog({"templates": {"x": {"required_fields": {"name": "([unclosed"}}}})
    with pytest.raises(ConfigError):
        parse_template_catalog({"fraud_patterns": [{"pattern": "copy"}]})
