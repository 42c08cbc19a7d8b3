"""Tests for the FastAPI backend."""

import json

import pytest
from fastapi.testclient import TestClient

from kpi_copilot.api.main import create_app
from kpi_copilot.reports import FULL_REPORT_TITLE


@pytest.fixture
def client():
    with TestClient(create_app()) as client:
        yield client


class TestHealthAndStats:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["node_count"] == 40

    def test_stats(self, client):
        data = client.get("/stats").json()
        assert data["total"] == 40
        assert data["achievement"]["achieved_rate"] == "61.1"
        assert data["model_coverage"]["coverage_rate"] == "66.7"
        assert data["by_status"]["achieved"] == 11


class TestQuery:

    def test_query(self, client):
        response = client.post("/query", json={"query": "KPI_NVH 的链路", "thread_id": "s1"})
        assert response.status_code == 200

        data = response.json()
        assert data["intent"] == "trace_chain"
        assert data["action"] == "highlight"
        assert "KPI_NVH" in data["nodes"]
        assert data["thread_id"] == "s1"
        assert data["entities"][0] == {"type": "node_id", "value": "KPI_NVH", "confidence": 0.95, "raw": None}

    def test_empty_query_rejected(self, client):
        assert client.post("/query", json={"query": ""}).status_code == 422

    def test_stream(self, client):
        response = client.post("/query/stream", json={"query": "识别瓶颈"})
        assert response.status_code == 200

        events = [
            json.loads(line[len("data: "):])
            for line in response.text.splitlines()
            if line.startswith("data: ")
        ]
        assert events[0]["type"] == "start"
        assert events[-1]["type"] == "complete"
        generator = next(e for e in events if e.get("node") == "generator")
        assert generator["response"]["content"].startswith("🎯 **关键瓶颈识别**")


class TestGraphUpdate:

    def test_replace_graph(self, client):
        payload = {
            "nodes": [
                {"id": "KPI_A", "data": {"category": "kpi", "level": 1, "metrics": {"achieved": True}}},
                {"id": "D_A", "data": {"category": "design"}},
            ],
            "edges": [{"id": "e1", "source": "KPI_A", "target": "D_A", "data": {"relationship": "implement"}}],
        }
        response = client.put("/graph", json=payload)
        assert response.status_code == 200
        assert response.json()["node_count"] == 2

        stats = client.get("/stats").json()
        assert stats["achievement"]["achieved_rate"] == "100.0"

    def test_invalid_graph(self, client):
        response = client.put("/graph", json={"nodes": [{"id": "X", "category": "bogus"}], "edges": []})
        assert response.status_code == 422
        assert client.get("/health").json()["node_count"] == 40


class TestReports:

    def test_markdown(self, client):
        response = client.get("/report")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert response.text.startswith(f"# {FULL_REPORT_TITLE}")

    def test_json(self, client):
        data = client.get("/report", params={"format": "json"}).json()
        assert data["title"] == FULL_REPORT_TITLE
        assert len(data["sections"]) == 7

    def test_bad_format(self, client):
        assert client.get("/report", params={"format": "pdf"}).status_code == 422

    def test_kpi_report(self, client):
        data = client.get("/report/KPI_NVH", params={"format": "json"}).json()
        assert data["title"] == "KPI_NVH 专项分析报告"

    def test_kpi_report_not_found(self, client):
        assert client.get("/report/D_Damping").status_code == 404
