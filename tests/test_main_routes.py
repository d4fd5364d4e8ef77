"""
test_main_routes.py

Web-layer tests for the static pages and the catch-all 404.

Marked with @pytest.mark.web.
"""

import pytest
from bs4 import BeautifulSoup


# ============================================================================
# Test: Required Routes Exist
# ----------------------------------------------------------------------------
# create_app() must register every page of the site on the blueprint.
# ============================================================================

@pytest.mark.web
def test_create_app_has_required_routes(app):
    rules = {r.rule for r in app.url_map.iter_rules()}

    for rule in (
        "/",
        "/about",
        "/login",
        "/register",
        "/logout",
        "/userHistory",
        "/solutions/projects",
        "/solutions/projects/<project_id>",
        "/solutions/addProject",
        "/solutions/editProject",
        "/solutions/editProject/<project_id>",
        "/solutions/deleteProject/<project_id>",
    ):
        assert rule in rules


@pytest.mark.web
def test_home_and_about_render(client):
    home = client.get("/")
    about = client.get("/about")

    assert home.status_code == 200
    assert about.status_code == 200
    assert "Climate Solutions" in home.data.decode("utf-8")
    assert "About" in about.data.decode("utf-8")


@pytest.mark.web
def test_anonymous_nav_offers_login(client):
    soup = BeautifulSoup(client.get("/").data, "html.parser")

    assert soup.select_one('[data-testid="session-user"]') is None
    assert "Log in" in soup.select_one('[data-testid="nav"]').get_text()


@pytest.mark.web
def test_unmatched_route_renders_404_page(client):
    resp = client.get("/definitely/not/here")

    assert resp.status_code == 404
    soup = BeautifulSoup(resp.data, "html.parser")
    message = soup.select_one('[data-testid="error-message"]').get_text(strip=True)
    assert message == "I'm sorry, we're unable to find what you're looking for"


@pytest.mark.web
@pytest.mark.parametrize("method, path", [
    ("post", "/about"),
    ("get", "/solutions/editProject"),
    ("put", "/solutions/projects"),
])
def test_wrong_method_on_known_path_renders_404_page(client, method, path):
    resp = getattr(client, method)(path)

    assert resp.status_code == 404
    soup = BeautifulSoup(resp.data, "html.parser")
    message = soup.select_one('[data-testid="error-message"]').get_text(strip=True)
    assert message == "I'm sorry, we're unable to find what you're looking for"
