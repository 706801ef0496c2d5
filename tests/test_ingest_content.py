"""
Tests for the content pack ingestion script.
"""

import json

import pytest

from docstore.core.config import build_document_store
from scripts import ingest_content


@pytest.fixture
def pack(tmp_path):
    path = tmp_path / "pack.json"
    path.write_text(json.dumps([
        {"id": "math_fractions", "content": "a fraction names part of a whole",
         "metadata": {"subject": "MATHEMATICS", "grade": 7}},
        {"id": "empty", "content": ""},
    ]), encoding="utf-8")
    return path


def test_ingest_pack_persists_chunks(pack, monkeypatch, capsys):
    monkeypatch.setenv("EMBED_DIM", "16")

    assert ingest_content.main([str(pack), "--chunk-size", "4", "--chunk-overlap", "1"]) == 0

    out = capsys.readouterr().out
    assert "Indexed 2 chunks from 2 sources" in out
    assert "Skipped (empty): empty" in out

    store = build_document_store()
    assert store.list_ids() == ["math_fractions_0", "math_fractions_1"]
    assert store.get("math_fractions_0").metadata["grade"] == "7"


def test_ingest_rejects_invalid_config(pack, monkeypatch, capsys):
    monkeypatch.setenv("EMBED_PROVIDER", "unknown")

    assert ingest_content.main([str(pack)]) == 1
    assert "Invalid EMBED_PROVIDER" in capsys.readouterr().out


def test_ingest_missing_pack(tmp_path, capsys):
    assert ingest_content.main([str(tmp_path / "missing.json")]) == 1
    assert "Could not read content pack" in capsys.readouterr().out


def test_ingest_bad_chunk_settings(pack, capsys):
    assert ingest_content.main([str(pack), "--chunk-size", "4", "--chunk-overlap", "4"]) == 1
    assert "ERROR" in capsys.readouterr().out
