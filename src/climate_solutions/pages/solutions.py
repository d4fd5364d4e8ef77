"""
climate_solutions/pages/solutions.py

Catalog routes under /solutions.

Read pages are public; add/edit/delete require a logged-in session.

Error rendering:
- listing failures (including the store's "empty = NotFoundError" policy)
  render the list page with no projects
- a project lookup miss renders the 404 page
- failed writes render the generic failure page
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from flask import redirect, render_template, request, url_for

from climate_solutions.errors import StoreError
from climate_solutions.pages import catalog_store, pages_bp, render_failure, render_not_found
from climate_solutions.session import login_required

logger = logging.getLogger(__name__)


@pages_bp.get("/solutions/projects")
def projects():
    """List every project, or only those whose sector name contains ?sector=."""
    sector = request.args.get("sector")
    store = catalog_store()

    try:
        if sector:
            data = store.list_projects_by_sector(sector)
        else:
            data = store.list_projects()
    except StoreError as err:
        if sector:
            logger.info("Error loading projects with sector %s: %s", sector, err)
        else:
            logger.info("Error loading all projects: %s", err)
        data = []

    return render_template("projects.html", projects=data, sector=sector or "", page="/solutions/projects")


@pages_bp.get("/solutions/projects/<project_id>")
def project_detail(project_id):
    try:
        project = catalog_store().get_project(project_id)
    except StoreError:
        return render_not_found(f"Project with id {project_id} cannot be found.")
    return render_template("project.html", project=project)


@pages_bp.get("/solutions/addProject")
@login_required
def add_project():
    try:
        sectors = catalog_store().list_sectors()
    except StoreError as err:
        logger.warning("Error loading sectors: %s", err)
        sectors = []
    return render_template("addProject.html", sectors=sectors, page="/solutions/addProject")


@pages_bp.post("/solutions/addProject")
@login_required
def add_project_submit():
    try:
        catalog_store().create_project(request.form.to_dict())
    except StoreError as err:
        return render_failure(err.message)
    return redirect(url_for("pages.projects"))


@pages_bp.get("/solutions/editProject/<project_id>")
@login_required
def edit_project(project_id):
    """Load the project and the sector choices concurrently."""
    store = catalog_store()
    with ThreadPoolExecutor(max_workers=2) as executor:
        project_future = executor.submit(store.get_project, project_id)
        sectors_future = executor.submit(store.list_sectors)
        try:
            project = project_future.result()
            sectors = sectors_future.result()
        except StoreError as err:
            return render_not_found(err.message)

    return render_template("editProject.html", project=project, sectors=sectors, page="")


@pages_bp.post("/solutions/editProject")
@login_required
def edit_project_submit():
    project_id = request.form.get("id", "").strip()
    if not project_id:
        return render_failure("Missing project id", status=400)

    try:
        catalog_store().update_project(project_id, request.form.to_dict())
    except StoreError as err:
        return render_failure(err.message)
    return redirect(url_for("pages.projects"))


@pages_bp.get("/solutions/deleteProject/<project_id>")
@login_required
def delete_project(project_id):
    try:
        catalog_store().delete_project(project_id)
    except StoreError as err:
        return render_failure(err.message)
    return redirect(url_for("pages.projects"))
