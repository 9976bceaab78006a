"""
Integration tests for the greenhouse API endpoints.
"""

from unittest.mock import patch

import structlog

from py_greenhouse.api import main


class TestServiceEndpoints:
    """Root, health and defaults."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Greenhouse Planner API"
        assert data["status"] == "running"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "connected"}

    @patch('py_greenhouse.api.main.db')
    def test_health_database_down(self, mock_db, client):
        mock_db.ping.side_effect = RuntimeError("connection refused")

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["detail"] == "Service unhealthy"

    def test_defaults(self, client):
        response = client.get("/defaults")
        assert response.status_code == 200
        data = response.json()

        assert data["grid_size"] == 10
        assert data["default_metric"] == "cell_count"
        assert set(data["metrics"]) == {"cell_count", "spawn_sites"}

        cells = [tuple(c) for c in data["default_unlocked_cells"]]
        assert len(cells) == 12
        assert cells == sorted(cells)
        assert (3, 3) not in cells
        assert (3, 4) in cells


class TestExpansionEndpoint:
    """POST /greenhouse/expansion."""

    def test_expansion_plan(self, client):
        response = client.post("/greenhouse/expansion", json={
            "unlocked_cells": [[0, 0]],
            "locked_cells": [[0, 1], [1, 0], [5, 5]],
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total_steps"] == 2
        assert data["final_gloomgourd_count"] == 3
        assert data["steps"] == [
            {"order": 1, "cell": [0, 1], "gloomgourd_potential": 2, "gloomgourd_gain": 1},
            {"order": 2, "cell": [1, 0], "gloomgourd_potential": 3, "gloomgourd_gain": 1},
        ]

    def test_no_locked_cells(self, client):
        response = client.post("/greenhouse/expansion", json={
            "unlocked_cells": [[0, 0]],
            "locked_cells": [],
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "No locked cells to expand to"

    def test_no_unlocked_cells(self, client):
        response = client.post("/greenhouse/expansion", json={
            "unlocked_cells": [],
            "locked_cells": [[0, 1]],
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Please select at least one cell first"

    def test_unknown_metric(self, client):
        response = client.post("/greenhouse/expansion", json={
            "unlocked_cells": [[0, 0]],
            "locked_cells": [[0, 1]],
            "metric": "luck",
        })
        assert response.status_code == 400
        assert "luck" in response.json()["detail"]

    def test_cell_outside_grid(self, client):
        response = client.post("/greenhouse/expansion", json={
            "unlocked_cells": [[0, 0]],
            "locked_cells": [[0, 10]],
        })
        assert response.status_code == 422

    def test_malformed_cell(self, client):
        response = client.post("/greenhouse/expansion", json={
            "unlocked_cells": [[0, 0]],
            "locked_cells": [["a", "b"]],
        })
        assert response.status_code == 422

    def test_unreachable_only(self, client):
        response = client.post("/greenhouse/expansion", json={
            "unlocked_cells": [[0, 0]],
            "locked_cells": [[9, 9]],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["steps"] == []
        assert data["total_steps"] == 0
        assert data["final_gloomgourd_count"] == 1

    def test_spawn_site_metric(self, client):
        defaults = client.get("/defaults").json()

        response = client.post("/greenhouse/expansion", json={
            "unlocked_cells": defaults["default_unlocked_cells"],
            "locked_cells": [[2, 5], [2, 4]],
            "metric": "spawn_sites",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total_steps"] == 2
        assert [step["order"] for step in data["steps"]] == [1, 2]
        assert {tuple(step["cell"]) for step in data["steps"]} == {(2, 4), (2, 5)}
        potentials = [step["gloomgourd_potential"] for step in data["steps"]]
        assert potentials == sorted(potentials)
        assert data["final_gloomgourd_count"] == potentials[-1]


class TestLoggingConfiguration:
    """Renderer selection from settings."""

    def teardown_method(self):
        main.configure_logging()

    def _renderer(self):
        return structlog.get_config()["processors"][-1]

    def test_json_format(self):
        with patch.object(main.settings, "debug", False), \
                patch.object(main.settings, "log_format", "json"):
            main.configure_logging()
            assert isinstance(self._renderer(), structlog.processors.JSONRenderer)

    def test_debug_forces_console_output(self):
        with patch.object(main.settings, "debug", True), \
                patch.object(main.settings, "log_format", "json"):
            main.configure_logging()
            assert isinstance(self._renderer(), structlog.dev.ConsoleRenderer)
