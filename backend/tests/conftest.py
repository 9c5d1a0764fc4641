"""Shared fixtures: sample grids and an API client with a fresh project store."""

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from foundation_layout.main import app
from foundation_layout.routers.projects import get_store
from foundation_layout.schemas import Column, GridLine, GridOrientation, ProjectSettings
from foundation_layout.services.project_store import ProjectStore

# Low resolution keeps renders fast
TEST_DPI = 60


def make_line(line_id, label, position, orientation):
    return GridLine(id=line_id, label=label, position=position, orientation=orientation)


def vertical(line_id, label, position):
    return make_line(line_id, label, position, GridOrientation.VERTICAL)


def horizontal(line_id, label, position):
    return make_line(line_id, label, position, GridOrientation.HORIZONTAL)


@pytest.fixture
def settings():
    return ProjectSettings()


@pytest.fixture
def grid_2x2():
    """Vertical A, B at x=100, 300; horizontal 1, 2 at y=100, 300."""
    return [
        vertical("va", "A", 100),
        vertical("vb", "B", 300),
        horizontal("h1", "1", 100),
        horizontal("h2", "2", 300),
    ]


@pytest.fixture
def grid_3x3():
    return [
        vertical("va", "A", 100),
        vertical("vb", "B", 300),
        vertical("vc", "C", 500),
        horizontal("h1", "1", 100),
        horizontal("h2", "2", 300),
        horizontal("h3", "3", 500),
    ]


@pytest.fixture
def rectangle_columns():
    return [Column(intersection_id=i) for i in ("A-1", "B-1", "A-2", "B-2")]


@pytest.fixture
def store():
    return ProjectStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def plan_png():
    buffer = BytesIO()
    Image.new('RGB', (1000, 700), 'white').save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def project(client, plan_png):
    response = client.post(
        "/api/v1/projects/",
        files={"file": ("plan.png", plan_png, "image/png")}
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def low_dpi(monkeypatch):
    monkeypatch.setattr("foundation_layout.services.drawing_composer.DRAWING_DPI", TEST_DPI)
    return TEST_DPI
