import json

import pytest

from glossary import cli, storage
from glossary.models import GlossaryEntry

pytestmark = pytest.mark.usefixtures("restore_logging")

PAGE = (
    "<html><body>"
    '<div data-test-id="left-sidebar"><span>Deal Stage</span><span>Owner</span></div>'
    "</body></html>"
)

ENTRIES = [
    {"id": "stage", "title": "Deal Stage", "trigger": "Deal Stage", "aliases": ["Stage"]},
    {"id": "owner", "title": "Owner", "trigger": "Owner", "enabled": False},
    {"id": "about", "title": "About this portal"},
]


@pytest.fixture
def files(tmp_path):
    page = tmp_path / "page.html"
    page.write_text(PAGE, encoding="utf-8")
    entries = tmp_path / "glossary.json"
    entries.write_text(json.dumps(ENTRIES), encoding="utf-8")
    return page, entries


def test_annotate_writes_output(files, tmp_path, capsys):
    page, entries = files
    out = tmp_path / "out.html"
    cache = tmp_path / "index.json"
    cli.main(["annotate", str(page), "--entries", str(entries), "--output", str(out), "--index-cache", str(cache)])

    html = out.read_text(encoding="utf-8")
    assert html.count('data-guide-entry-id="stage"') == 1
    assert 'data-guide-entry-id="owner"' not in html
    assert cache.exists()
    assert "1 annotations written" in capsys.readouterr().out


def test_annotate_to_stdout(files, capsysbinary):
    page, entries = files
    cli.main(["annotate", str(page), "--entries", str(entries)])
    assert b"guide-term-wrapper" in capsysbinary.readouterr().out


def test_validate_ok(files, capsys):
    _, entries = files
    cli.main(["validate", str(entries)])
    assert "OK (3 entries)" in capsys.readouterr().out


def test_validate_invalid(files, monkeypatch):
    _, entries = files
    bad = GlossaryEntry("x", "X", match_type="regex")
    monkeypatch.setattr(storage, "load_glossary", lambda path: [bad])
    with pytest.raises(SystemExit) as exc:
        cli.main(["validate", str(entries)])
    assert "invalid glossary" in str(exc.value)


def test_stats_json(files, capsys):
    _, entries = files
    cli.main(["stats", str(entries), "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data == {
        "entries": 3,
        "enabled": 2,
        "display_only": 1,
        "indexed_terms": 2,
        "longest_term": "deal stage",
    }


def test_stats_text(files, capsys):
    _, entries = files
    cli.main(["-v", "stats", str(entries)])
    out = capsys.readouterr().out
    assert "Entries: 3" in out
    assert "Indexed terms: 2" in out


def test_command_required():
    with pytest.raises(SystemExit):
        cli.main([])
