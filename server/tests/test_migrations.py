from __future__ import annotations

from pathlib import Path

from alembic.script import ScriptDirectory

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


def _scripts() -> ScriptDirectory:
    return ScriptDirectory(str(ALEMBIC_DIR), version_locations=[str(ALEMBIC_DIR / "versions")])


def test_document_and_identity_stores_migrate_independently():
    scripts = _scripts()

    assert sorted(scripts.get_bases()) == ["0001_create_parish_staff_tables", "0002_create_credentials"]
    assert scripts.revision_map.get_current_head("documents") == "0001_create_parish_staff_tables"
    assert scripts.revision_map.get_current_head("identity") == "0002_create_credentials"


def test_credentials_revision_does_not_pull_in_document_tables():
    credentials = _scripts().get_revision("0002_create_credentials")

    assert credentials.down_revision is None
    assert "identity" in credentials.branch_labels
