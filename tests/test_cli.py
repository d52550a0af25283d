import argparse
import json

import pytest

from catalog_search import cli
from catalog_search.config import Settings
from catalog_search.orchestrator import SearchOrchestrator
from catalog_search.recent import InMemoryKeyValueStore
from catalog_search.sources.memory import InMemoryCatalogSource


@pytest.fixture
def parser():
    return cli.build_parser()


@pytest.fixture
def settings(tmp_path, monkeypatch):
    value = Settings(data_dir=tmp_path, debounce_seconds=0)
    monkeypatch.setattr(cli, "get_settings", lambda: value)
    return value


@pytest.fixture
def catalog_path(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps(
            {
                "venues": [
                    {"id": 1, "name": "Pizzaria Roma", "category": "Pizza"},
                    {"id": 2, "name": "Sakura", "category": "Japonesa"},
                ],
                "menus": {
                    "1": [
                        {"id": 10, "name": "Margherita Pizza", "price": 30, "category_id": 5},
                        {"id": 11, "name": "Pizza Doce", "price": 25, "discount": 10},
                    ],
                    "2": [{"id": 20, "name": "Sushi Combo", "price": 60}],
                },
            }
        ),
        encoding="utf-8",
    )
    return path


def test_build_parser_has_commands(parser: argparse.ArgumentParser):
    search_args = parser.parse_args(["search", "pizza", "--kind", "dish", "--limit", "3"])
    assert search_args.command == "search"
    assert search_args.kind == "dish"
    assert search_args.limit == 3
    assert search_args.offset == 0
    assert search_args.sort == "relevance"

    category_args = parser.parse_args(["category", "5", "--offset", "2"])
    assert category_args.category_id == "5"
    assert category_args.limit is None
    assert category_args.offset == 2

    assert parser.parse_args(["suggest", "piz"]).command == "suggest"
    assert parser.parse_args(["recent", "--clear"]).clear is True
    assert parser.parse_args(["diagnose"]).query == "test"
    assert parser.parse_args(["diagnose", "--metrics"]).metrics is True


def test_build_parser_rejects_unknown_kind(parser: argparse.ArgumentParser):
    with pytest.raises(SystemExit):
        parser.parse_args(["search", "pizza", "--kind", "drinks"])


def test_build_parser_rejects_unknown_sort(parser: argparse.ArgumentParser):
    with pytest.raises(SystemExit):
        parser.parse_args(["search", "pizza", "--sort", "spiciness"])


@pytest.mark.parametrize("argv", [["search", "pizza", "--limit", "0"], ["category", "5", "--offset", "-1"]])
def test_main_rejects_bad_paging(argv, monkeypatch):
    monkeypatch.setattr(cli, "get_settings", lambda: "settings")

    with pytest.raises(SystemExit):
        cli.main(argv)


def test_main_search_dispatch(monkeypatch):
    called = {}

    async def fake_search(settings, *, query, kind, catalog_path, filters, limit, offset):
        called["args"] = {
            "settings": settings,
            "query": query,
            "kind": kind,
            "catalog_path": catalog_path,
            "filters": filters,
            "limit": limit,
            "offset": offset,
        }
        return 0

    monkeypatch.setattr(cli, "get_settings", lambda: "settings")
    monkeypatch.setattr(cli, "_search_async", fake_search)

    exit_code = cli.main(["search", "pizza", "--kind", "venue"])
    assert exit_code == 0
    assert called["args"] == {
        "settings": "settings",
        "query": "pizza",
        "kind": "venue",
        "catalog_path": None,
        "filters": None,
        "limit": None,
        "offset": 0,
    }


def test_main_search_builds_filters(monkeypatch):
    called = {}

    async def fake_search(settings, *, filters, **kwargs):
        called["filters"] = filters
        return 0

    monkeypatch.setattr(cli, "get_settings", lambda: "settings")
    monkeypatch.setattr(cli, "_search_async", fake_search)

    cli.main(["search", "pizza", "--venue", "12", "--min-price", "5", "--sort", "price_asc"])

    filters = called["filters"]
    assert filters.venue_id == "12"
    assert filters.min_price == 5
    assert filters.sort_by == "price_asc"


def test_main_search_rejects_inverted_price_range(monkeypatch, capsys):
    monkeypatch.setattr(cli, "get_settings", lambda: "settings")

    exit_code = cli.main(["search", "pizza", "--min-price", "30", "--max-price", "10"])

    assert exit_code == 2
    assert "Invalid filters" in capsys.readouterr().err


def test_search_prints_highlighted_results_and_records_history(settings, catalog_path, capsys):
    exit_code = cli.main(["search", "pizza", "--catalog", str(catalog_path)])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "source=aggregate" in output
    assert "[Pizza]ria Roma" in output
    assert "Margherita [Pizza] @ Pizzaria Roma" in output
    assert "Sushi" not in output

    exit_code = cli.main(["recent"])

    assert exit_code == 0
    assert "pizza (kind=all" in capsys.readouterr().out


def test_search_without_matches(settings, catalog_path, capsys):
    exit_code = cli.main(["search", "feijoada", "--catalog", str(catalog_path)])

    assert exit_code == 0
    assert "No results for 'feijoada'." in capsys.readouterr().out


def test_suggest_lists_names(settings, catalog_path, capsys):
    exit_code = cli.main(["suggest", "piz", "--catalog", str(catalog_path)])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "Suggestions for 'piz' (3 name(s))" in output
    assert "- Pizzaria Roma" in output
    assert "- Pizza Doce" in output


def test_search_price_filter_and_sort(settings, catalog_path, capsys):
    exit_code = cli.main(
        ["search", "pizza", "--catalog", str(catalog_path), "--max-price", "28", "--sort", "price_asc"]
    )

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "[Pizza] Doce @ Pizzaria Roma" in output
    assert "Margherita" not in output
    assert "[venue]" not in output


def test_search_pages_results(settings, catalog_path, capsys):
    exit_code = cli.main(["search", "pizza", "--catalog", str(catalog_path), "--limit", "1"])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "3 result(s), showing 1-1" in output
    assert "more results (use --offset 1)" in output


def test_category_lists_dishes(settings, catalog_path, capsys):
    exit_code = cli.main(["category", "5", "--catalog", str(catalog_path)])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "Category '5'" in output
    assert "source=aggregate" in output
    assert "Margherita Pizza @ Pizzaria Roma" in output
    assert "Pizza Doce" not in output


def test_category_without_dishes(settings, catalog_path, capsys):
    exit_code = cli.main(["category", "99", "--catalog", str(catalog_path)])

    assert exit_code == 0
    assert "No dishes in category '99'." in capsys.readouterr().out


def test_recent_clear(settings, capsys):
    exit_code = cli.main(["recent", "--clear"])

    assert exit_code == 0
    assert "Recent searches cleared." in capsys.readouterr().out


def test_search_reports_exhausted_sources(settings, monkeypatch, capsys):
    class DownSource(InMemoryCatalogSource):
        async def list_venues(self):
            raise ConnectionError("network down")

    async def fake_build(settings, *, catalog_path=None):
        orchestrator = SearchOrchestrator(DownSource(), settings, store=InMemoryKeyValueStore())
        await orchestrator.initialise()
        return orchestrator

    monkeypatch.setattr(cli, "build_orchestrator", fake_build)

    exit_code = cli.main(["search", "pizza"])

    assert exit_code == 2
    assert "network down" in capsys.readouterr().err
