"""HTTP layer: project sessions, grid editing, columns, history and plan output."""

import json
from types import SimpleNamespace

from foundation_layout.analytics import analytics
from foundation_layout.services import gemini_service
from foundation_layout.services.gemini_service import GridDetectionError

PROJECTS = "/api/v1/projects"

RECTANGLE_REQUEST = {
    "gridLines": [
        {"id": "va", "label": "A", "position": 100, "orientation": "vertical"},
        {"id": "vb", "label": "B", "position": 300, "orientation": "vertical"},
        {"id": "h1", "label": "1", "position": 100, "orientation": "horizontal"},
        {"id": "h2", "label": "2", "position": 300, "orientation": "horizontal"},
    ],
    "columns": [
        {"intersectionId": "A-1"},
        {"intersectionId": "B-1"},
        {"intersectionId": "A-2"},
        {"intersectionId": "B-2"},
    ],
    "settings": {"scale": 100, "gridSpacing": 4000},
}


def add_line(client, project_id, orientation, position, **extra):
    response = client.post(
        f"{PROJECTS}/{project_id}/grid-lines",
        json={"orientation": orientation, "position": position, **extra}
    )
    assert response.status_code == 201
    return response.json()


def build_rectangle(client, project_id):
    add_line(client, project_id, "vertical", 100)
    add_line(client, project_id, "vertical", 300)
    add_line(client, project_id, "horizontal", 100)
    add_line(client, project_id, "horizontal", 300)
    for intersection in ("A-1", "B-1", "A-2", "B-2"):
        response = client.post(
            f"{PROJECTS}/{project_id}/columns/toggle",
            json={"intersectionId": intersection}
        )
        assert response.status_code == 200


# =============================================================================
# APP
# =============================================================================

def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"
    assert client.get("/health").json()["status"] == "healthy"


# =============================================================================
# PROJECTS
# =============================================================================

def test_create_project(project):
    assert project["image_width"] == 1000
    assert project["image_height"] == 700
    assert project["grid_lines"] == []
    assert project["settings"]["gridSpacing"] == 4000
    assert project["can_undo"] is False


def test_events_are_counted(client, plan_png):
    analytics.reset()
    for _ in range(2):
        client.post(f"{PROJECTS}/", files={"file": ("plan.png", plan_png, "image/png")})
    events = client.get("/health").json()["events"]
    assert events == {"project_created": 2}


def test_create_rejects_other_file_types(client):
    response = client.post(f"{PROJECTS}/", files={"file": ("plan.pdf", b"%PDF-1.4", "application/pdf")})
    assert response.status_code == 400


def test_create_rejects_unreadable_image(client):
    response = client.post(f"{PROJECTS}/", files={"file": ("plan.png", b"not an image", "image/png")})
    assert response.status_code == 400


def test_unknown_project(client):
    assert client.get(f"{PROJECTS}/missing").status_code == 404


def test_delete_project(client, project):
    assert client.delete(f"{PROJECTS}/{project['id']}").status_code == 204
    assert client.get(f"{PROJECTS}/{project['id']}").status_code == 404


# =============================================================================
# SETTINGS
# =============================================================================

def test_update_settings(client, project):
    response = client.patch(f"{PROJECTS}/{project['id']}/settings", json={"wallWidth": "300"})
    assert response.status_code == 200
    assert response.json()["wallWidth"] == 300
    assert response.json()["footingWidth"] == 1000


def test_form_setting_input(client, project):
    url = f"{PROJECTS}/{project['id']}/settings"
    response = client.put(f"{url}/footingWidth", json={"value": "1200"})
    assert response.status_code == 200
    assert response.json()["footingWidth"] == 1200

    response = client.put(f"{url}/wall_width", json={"value": "abc"})
    assert response.status_code == 200
    assert response.json()["wallWidth"] == 225

    assert client.put(f"{url}/wall_width", json={"value": -3}).json()["wallWidth"] == 225
    assert client.put(f"{url}/roofPitch", json={"value": 30}).status_code == 404


def test_invalid_settings_rejected(client, project):
    response = client.patch(f"{PROJECTS}/{project['id']}/settings", json={"scale": 0})
    assert response.status_code == 422
    state = client.get(f"{PROJECTS}/{project['id']}").json()
    assert state["settings"]["scale"] == 100


# =============================================================================
# GRID LINES
# =============================================================================

def test_grid_labels_are_allocated(client, project):
    pid = project["id"]
    assert add_line(client, pid, "vertical", 100)["grid_line"]["label"] == "A"
    assert add_line(client, pid, "vertical", 300)["grid_line"]["label"] == "B"
    assert add_line(client, pid, "horizontal", 50)["grid_line"]["label"] == "1"
    assert add_line(client, pid, "horizontal", 90, label="3")["grid_line"]["label"] == "3"
    assert add_line(client, pid, "horizontal", 150)["grid_line"]["label"] == "4"


def test_explicit_label_collision_is_flagged(client, project):
    add_line(client, project["id"], "vertical", 100)
    created = add_line(client, project["id"], "vertical", 200, label="A")
    assert created["label_collision"] is True


def test_remove_and_clear_grid(client, project):
    pid = project["id"]
    line = add_line(client, pid, "vertical", 100)["grid_line"]
    add_line(client, pid, "horizontal", 100)

    state = client.delete(f"{PROJECTS}/{pid}/grid-lines/{line['id']}").json()
    assert len(state["grid_lines"]) == 1
    assert client.delete(f"{PROJECTS}/{pid}/grid-lines/{line['id']}").status_code == 404

    state = client.delete(f"{PROJECTS}/{pid}/grid-lines").json()
    assert state["grid_lines"] == []
    assert state["columns"] == []


def test_detect_grid(client, project, monkeypatch):
    reply = {"gridLines": [
        {"label": "A", "orientation": "vertical", "position": 0.2},
        {"label": "1", "orientation": "horizontal", "position": 0.5},
    ]}
    models = SimpleNamespace(generate_content=lambda **kwargs: SimpleNamespace(text=json.dumps(reply)))
    monkeypatch.setattr(gemini_service, "get_gemini_client", lambda: SimpleNamespace(models=models))

    response = client.post(f"{PROJECTS}/{project['id']}/grid-lines/detect")
    assert response.status_code == 200
    positions = {l["label"]: l["position"] for l in response.json()["grid_lines"]}
    assert positions == {"A": 200, "1": 350}
    assert response.json()["can_undo"] is True


def test_detect_failure_keeps_state(client, project, monkeypatch):
    add_line(client, project["id"], "vertical", 100)

    def no_client():
        raise GridDetectionError("API key not configured")

    monkeypatch.setattr(gemini_service, "get_gemini_client", no_client)
    response = client.post(f"{PROJECTS}/{project['id']}/grid-lines/detect")
    assert response.status_code == 502
    assert "Detection failed" in response.json()["detail"]

    state = client.get(f"{PROJECTS}/{project['id']}").json()
    assert [l["label"] for l in state["grid_lines"]] == ["A"]


# =============================================================================
# COLUMNS
# =============================================================================

def test_toggle_column(client, project):
    pid = project["id"]
    add_line(client, pid, "vertical", 100)
    add_line(client, pid, "horizontal", 100)

    state = client.post(f"{PROJECTS}/{pid}/columns/toggle", json={"intersectionId": "A-1"}).json()
    assert state["columns"] == [{"intersectionId": "A-1", "type": "square", "width": 20.0, "height": 20.0}]

    state = client.post(f"{PROJECTS}/{pid}/columns/toggle", json={"intersectionId": "A-1"}).json()
    assert state["columns"] == []


def test_toggle_unknown_intersection(client, project):
    response = client.post(f"{PROJECTS}/{project['id']}/columns/toggle", json={"intersectionId": "Z-9"})
    assert response.status_code == 404


def test_select_column_by_click(client, project):
    pid = project["id"]
    add_line(client, pid, "vertical", 400)
    add_line(client, pid, "horizontal", 200)

    state = client.post(f"{PROJECTS}/{pid}/columns/select-at", json={"x": 405, "y": 196}).json()
    assert [c["intersectionId"] for c in state["columns"]] == ["A-1"]

    miss = client.post(f"{PROJECTS}/{pid}/columns/select-at", json={"x": 10, "y": 10})
    assert miss.status_code == 404


def test_set_column_dimensions(client, project):
    pid = project["id"]
    add_line(client, pid, "vertical", 100)
    add_line(client, pid, "horizontal", 100)
    client.post(f"{PROJECTS}/{pid}/columns/toggle", json={"intersectionId": "A-1"})

    response = client.put(
        f"{PROJECTS}/{pid}/columns/A-1",
        json={"type": "rectangular", "width": 300, "height": 450}
    )
    assert response.status_code == 200
    assert response.json()["height"] == 450

    assert client.put(f"{PROJECTS}/{pid}/columns/B-1", json={"width": 300, "height": 300}).status_code == 404


# =============================================================================
# HISTORY
# =============================================================================

def test_undo_redo(client, project):
    pid = project["id"]
    assert client.post(f"{PROJECTS}/{pid}/undo").status_code == 409

    add_line(client, pid, "vertical", 100)
    state = client.post(f"{PROJECTS}/{pid}/undo").json()
    assert state["grid_lines"] == []
    assert state["can_redo"] is True

    state = client.post(f"{PROJECTS}/{pid}/redo").json()
    assert [l["label"] for l in state["grid_lines"]] == ["A"]
    assert client.post(f"{PROJECTS}/{pid}/redo").status_code == 409


# =============================================================================
# PLANS
# =============================================================================

def test_render_plan(client, low_dpi):
    response = client.post("/api/v1/plans/render", json=RECTANGLE_REQUEST)
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert "foundation_pro.png" in response.headers["content-disposition"]
    assert response.content.startswith(b"\x89PNG")


def test_render_requires_both_axes(client, low_dpi):
    request = dict(RECTANGLE_REQUEST, gridLines=RECTANGLE_REQUEST["gridLines"][:2])
    assert client.post("/api/v1/plans/render", json=request).status_code == 409


def test_plan_segments(client, low_dpi):
    response = client.post("/api/v1/plans/segments", json=RECTANGLE_REQUEST)
    assert response.status_code == 200
    body = response.json()
    assert len(body["segments"]) == 4
    assert len(body["columns"]) == 4
    assert body["px_per_real_mm"] == 200 / 4000
    assert {s["line_label"] for s in body["segments"]} == {"A", "B", "1", "2"}


def test_project_plan(client, project, low_dpi):
    pid = project["id"]
    assert client.get(f"{PROJECTS}/{pid}/plan.png").status_code == 409

    build_rectangle(client, pid)
    response = client.get(f"{PROJECTS}/{pid}/plan.png")
    assert response.status_code == 200
    assert response.content.startswith(b"\x89PNG")
    assert client.get(f"{PROJECTS}/{pid}").json()["has_generated_plan"] is True


def test_latest_plan_is_cached(client, project, low_dpi):
    pid = project["id"]
    assert client.get(f"{PROJECTS}/{pid}/plan/latest").status_code == 404

    build_rectangle(client, pid)
    generated = client.get(f"{PROJECTS}/{pid}/plan.png").content

    # Later edits do not change the stored drawing
    client.delete(f"{PROJECTS}/{pid}/grid-lines")
    latest = client.get(f"{PROJECTS}/{pid}/plan/latest")
    assert latest.status_code == 200
    assert latest.headers["content-type"] == "image/png"
    assert latest.content == generated
