"""Tests for CLI commands via typer.testing.CliRunner."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

from typer.testing import CliRunner

from scopegraph import __version__
from scopegraph.cli import app
from scopegraph.utils.http import AsyncHttpClient

runner = CliRunner()


def _config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "scope:\n"
        "  domains: [example.com]\n"
        "  cidrs: [192.0.2.0/24]\n"
        "  organizations: [Acme Widgets]\n"
    )
    return str(path)


def _records():
    def fqdn(name):
        return {"asset_type": "fqdn", "name": name}

    def ip(address):
        return {"asset_type": "ip_address", "address": address}

    return [
        {"from": fqdn("a.example.com"), "relation": "a_record", "to": ip("93.184.216.34")},
        {"from": fqdn("b.example.com"), "relation": "cname_record", "to": fqdn("c.example.com")},
        {"from": fqdn("c.example.com"), "relation": "cname_record", "to": fqdn("d.example.com")},
        {"from": fqdn("d.example.com"), "relation": "a_record", "to": ip("203.0.113.7")},
    ]


class TestVersionCommand:
    def test_version_output(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # no_args_is_help exits with code 0 or 2 depending on typer version
        assert "Usage" in result.output or "scopegraph" in result.output.lower()


class TestCheckCommand:
    def test_subdomain_in_scope(self, tmp_path):
        result = runner.invoke(app, ["check", "fqdn", "www.example.com", "--config", _config(tmp_path)])
        assert result.exit_code == 0
        assert "accuracy 90" in result.output

    def test_address_in_cidr(self, tmp_path):
        result = runner.invoke(
            app, ["check", "ip_address", "192.0.2.9", "--config", _config(tmp_path)],
        )
        assert result.exit_code == 0
        assert "192.0.2.0/24" in result.output

    def test_out_of_scope(self, tmp_path):
        result = runner.invoke(
            app, ["check", "fqdn", "notexample.com", "--config", _config(tmp_path)],
        )
        assert result.exit_code == 1
        assert "out of scope" in result.output

    def test_confidence_floor(self, tmp_path):
        result = runner.invoke(app, [
            "check", "fqdn", "a.b.example.com", "--config", _config(tmp_path),
            "--confidence", "90",
        ])
        assert result.exit_code == 1

    def test_unknown_kind(self, tmp_path):
        result = runner.invoke(app, ["check", "spaceship", "x", "--config", _config(tmp_path)])
        assert result.exit_code != 0

    def test_invalid_value(self, tmp_path):
        result = runner.invoke(
            app, ["check", "ip_address", "not-an-ip", "--config", _config(tmp_path)],
        )
        assert result.exit_code != 0


class TestImportAndResolve:
    def test_round_trip(self, tmp_path):
        records = tmp_path / "graph.json"
        records.write_text(json.dumps(_records()))
        db = str(tmp_path / "graph.db")

        result = runner.invoke(app, ["import", str(records), "--db", db])
        assert result.exit_code == 0
        assert "Imported 4 relations" in result.output

        result = runner.invoke(app, ["resolve", "a.example.com", "b.example.com", "--db", db])
        assert result.exit_code == 0
        assert "93.184.216.34" in result.output
        assert "203.0.113.7" in result.output

    def test_nothing_resolves(self, tmp_path):
        result = runner.invoke(
            app, ["resolve", "nothing.example.com", "--db", str(tmp_path / "empty.db")],
        )
        assert result.exit_code == 1
        assert "no addresses were discovered" in result.output

    def test_since_hours_filters_old_data(self, tmp_path):
        records = tmp_path / "graph.yaml"
        records.write_text(json.dumps(_records()))
        db = str(tmp_path / "graph.db")
        runner.invoke(app, ["import", str(records), "--db", db])

        result = runner.invoke(
            app, ["resolve", "a.example.com", "--db", db, "--since-hours", "1"],
        )
        assert result.exit_code == 0
        assert "93.184.216.34" in result.output

    def test_import_missing_file(self, tmp_path):
        result = runner.invoke(app, ["import", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1

    def test_import_bad_record(self, tmp_path):
        records = tmp_path / "bad.yaml"
        records.write_text("- {from: {asset_type: fqdn, name: a.example.com}, relation: a_record}\n")
        result = runner.invoke(app, ["import", str(records), "--db", str(tmp_path / "g.db")])
        assert result.exit_code == 1


class TestDiscoverCommand:
    PAGE = "<td>www.example.com</td><td>api.example.com</td><td>cdn.example.net</td>"

    def _config(self, tmp_path, domains="[example.com]"):
        path = tmp_path / "discover.yaml"
        path.write_text(
            f"scope:\n  domains: {domains}\n"
            f"storage:\n  db_path: {tmp_path / 'graph.db'}\n"
        )
        return str(path)

    def test_runs_selected_plugin(self, tmp_path, monkeypatch):
        fetch = AsyncMock(return_value=self.PAGE)
        monkeypatch.setattr(AsyncHttpClient, "fetch_text", fetch)
        result = runner.invoke(
            app, ["discover", "--config", self._config(tmp_path), "--plugin", "rapiddns"],
        )
        assert result.exit_code == 0, result.output
        assert "api.example.com" in result.output
        assert "cdn.example.net" not in result.output
        assert "Discovered 2 names with rapiddns" in result.output
        fetch.assert_awaited_once_with("https://rapiddns.io/subdomain/example.com?full=1")

    def test_unknown_plugin(self, tmp_path):
        result = runner.invoke(
            app, ["discover", "--config", self._config(tmp_path), "--plugin", "shodan"],
        )
        assert result.exit_code == 2

    def test_no_domains(self, tmp_path):
        result = runner.invoke(app, ["discover", "--config", self._config(tmp_path, "[]")])
        assert result.exit_code == 1
        assert "No scope domains configured" in result.output
