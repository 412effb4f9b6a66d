"""Tests for the balancer CLI."""

import json

import pytest
from typer.testing import CliRunner

from balancer_core.cli.main import app

runner = CliRunner()

UNBALANCED_YAML = """\
servers:
  - host: rs1
    port: 16020
    start_code: 1
    regions:
      - {table: t1, start_key: "", end_key: "b", region_id: 1}
      - {table: t1, start_key: "b", end_key: "c", region_id: 2}
      - {table: t1, start_key: "c", end_key: "d", region_id: 3}
      - {table: t2, start_key: "", end_key: "k", region_id: 4}
      - {table: t2, start_key: "k", end_key: "", region_id: 5}
      - {table: t1, start_key: "d", end_key: "", region_id: 6}
  - host: rs2
    port: 16020
    start_code: 1
  - host: rs3
    port: 16020
    start_code: 1
"""


@pytest.fixture
def cluster_file(tmp_path):
    path = tmp_path / "cluster.yaml"
    path.write_text(UNBALANCED_YAML)
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "balancer.yaml"
    path.write_text("max_steps: 2000\nmax_moves_per_server: 1\n")
    return path


class TestPlanCommand:
    """Tests for 'balancer plan'."""

    def test_json_plan(self, cluster_file, config_file):
        result = runner.invoke(
            app, ["plan", str(cluster_file), "--config", str(config_file), "--seed", "7", "--json"]
        )
        assert result.exit_code == 0, result.output

        data = json.loads(result.stdout)
        assert data["status"] == "moves"
        assert data["initial_cost"] > data["best_cost"]
        destinations = [move["destination"] for move in data["moves"]]
        assert destinations.count("rs2,16020,1") == 2
        assert destinations.count("rs3,16020,1") == 2
        # one move per destination per round
        assert {move["round"] for move in data["moves"]} == {0, 1}
        assert data["region_counts"] == {"rs1,16020,1": 2, "rs2,16020,1": 2, "rs3,16020,1": 2}

    def test_same_seed_same_plan(self, cluster_file, config_file):
        args = ["plan", str(cluster_file), "--config", str(config_file), "--seed", "3", "--json"]
        first = json.loads(runner.invoke(app, args).stdout)
        second = json.loads(runner.invoke(app, args).stdout)
        assert first["moves"] == second["moves"]

    def test_table_output(self, cluster_file, config_file):
        result = runner.invoke(app, ["plan", str(cluster_file), "--config", str(config_file), "--seed", "1"])
        assert result.exit_code == 0, result.output
        assert "Status:" in result.output
        assert "moves" in result.output
        assert "Plan (4 moves)" in result.output

    def test_missing_cluster_file(self, tmp_path):
        result = runner.invoke(app, ["plan", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_invalid_config(self, cluster_file, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("max_moves_per_server: 0\n")
        result = runner.invoke(app, ["plan", str(cluster_file), "--config", str(path)])
        assert result.exit_code == 1

    def test_duplicate_region_is_an_error(self, tmp_path):
        path = tmp_path / "dup.yaml"
        path.write_text(
            "servers:\n"
            "  - {host: a, port: 1, regions: [{table: t, region_id: 1}]}\n"
            "  - {host: b, port: 1, regions: [{table: t, region_id: 1}]}\n"
        )
        result = runner.invoke(app, ["plan", str(path)])
        assert result.exit_code == 1
        assert "assigned" in result.output


class TestCostCommand:
    """Tests for 'balancer cost'."""

    def test_json_cost(self, cluster_file):
        result = runner.invoke(app, ["cost", str(cluster_file), "--json"])
        assert result.exit_code == 0, result.output

        data = json.loads(result.stdout)
        assert data["breakdown"]["region_count_skew"] == pytest.approx(1.0)
        assert data["weights"]["region_count_skew"] == 500
        assert data["total"] >= 500

    def test_table_output(self, cluster_file):
        result = runner.invoke(app, ["cost", str(cluster_file)])
        assert result.exit_code == 0, result.output
        assert "region_count_skew" in result.output
        assert "Total:" in result.output


class TestApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "plan" in result.output
        assert "cost" in result.output
