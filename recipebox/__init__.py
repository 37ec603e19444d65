import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from flask import Flask, flash, redirect, render_template, request, send_from_directory, url_for
from werkzeug.wrappers import Response

from .controller import ViewController, ViewState
from .config import load_config
from .errors import InvalidTransition, NotFoundError, RecipeBoxError
from .images import UPLOAD_PREFIX, ImageStore, LocalImageStore
from .log import configure_logging
from .models import CATEGORIES, EDITABLE_FIELDS, Recipe
from .persistence import RecipePersistence
from .repository import RecipeRepository
from .storage import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore

logger = logging.getLogger(__name__)

FORM_FIELDS = tuple(name for name in EDITABLE_FIELDS if name != "image")


def create_app(
    controller: Optional[ViewController] = None,
    *,
    image_store: Optional[ImageStore] = None,
    config: Optional[Mapping[str, Any]] = None,
) -> Flask:
    """Create and configure the Flask application.

    Parameters
    ----------
    controller:
        Optional view controller. When ``None`` one is built on top of the
        storage backend named by ``RECIPEBOX_STORAGE``.
    image_store:
        Where uploaded photos go. Defaults to an ``uploads`` directory next to
        the local data, or the Cloud Storage bucket when ``GCS_BUCKET`` is set.
    config:
        Settings overriding the ones read from the environment.
    """

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024
    app.config.from_mapping(load_config())
    if config:
        app.config.from_mapping(config)

    configure_logging(app.config["RECIPEBOX_LOG_LEVEL"])

    data_dir = Path(app.config["RECIPEBOX_DATA_DIR"] or app.instance_path)
    upload_dir = data_dir / "uploads"

    if controller is None:
        repository = RecipeRepository(RecipePersistence(_build_store(app.config, data_dir)))
        controller = ViewController(repository)
    if image_store is None:
        image_store = _build_image_store(app.config, upload_dir)

    load_error = None
    if not controller.repository.loaded:
        load_error = controller.initialize()

    app.config["RECIPE_CONTROLLER"] = controller
    app.config["RECIPE_IMAGES"] = image_store
    app.config["RECIPE_LOAD_ERROR"] = load_error

    @app.context_processor
    def template_helpers() -> dict:
        return {"image_src": _image_src, "categories": CATEGORIES}

    @app.get("/")
    def index() -> str:
        view: ViewController = app.config["RECIPE_CONTROLLER"]

        pending_error = app.config.pop("RECIPE_LOAD_ERROR", None)
        if pending_error is not None:
            flash(f"Failed to load recipes: {pending_error}", "error")

        if view.state is ViewState.ADD:
            return render_template("add_recipe.html", draft=view.draft, title="New Recipe")
        if view.state is ViewState.DETAIL and view.selected is not None:
            return render_template("recipe_detail.html", recipe=view.selected, title=view.selected.title)
        return render_template("index.html", recipes=view.recipes(), title="My Recipes")

    @app.post("/add")
    def start_add() -> Response:
        return _trigger(lambda view: view.start_add())

    @app.post("/add/cancel")
    def cancel_add() -> Response:
        return _trigger(lambda view: view.cancel_add())

    @app.post("/add/image")
    def pick_image() -> Response:
        def action(view: ViewController) -> None:
            _apply_form(view)
            _pick_uploaded_image(view)

        return _trigger(action)

    @app.post("/add/save")
    def save_recipe() -> Response:
        def action(view: ViewController) -> None:
            _apply_form(view)
            _pick_uploaded_image(view)
            recipe = view.save_draft()
            flash(f"Recipe '{recipe.title}' saved.", "success")

        return _trigger(action)

    @app.post("/recipes/<recipe_id>")
    def open_recipe(recipe_id: str) -> Response:
        return _trigger(lambda view: view.open_detail(recipe_id))

    @app.post("/back")
    def back() -> Response:
        return _trigger(lambda view: view.back())

    @app.post("/delete")
    def delete_recipe() -> Response:
        answer = request.form.get("confirm", "").strip().lower()

        def action(view: ViewController) -> None:
            if view.request_delete(lambda _message: answer == "yes"):
                flash("Recipe deleted.", "success")

        return _trigger(action)

    @app.get("/uploads/<path:name>")
    def uploaded_image(name: str) -> Response:
        return send_from_directory(upload_dir, name)

    def _trigger(action) -> Response:
        view: ViewController = app.config["RECIPE_CONTROLLER"]
        try:
            action(view)
        except NotFoundError:
            flash("Recipe not found.", "error")
        except InvalidTransition as exc:
            logger.warning("Ignored view action: %s", exc)
            flash(str(exc), "error")
        except RecipeBoxError as exc:
            flash(str(exc), "error")
        return redirect(url_for("index"))

    def _pick_uploaded_image(view: ViewController) -> None:
        upload = request.files.get("image")
        if upload is None or not upload.filename:
            return
        store: ImageStore = app.config["RECIPE_IMAGES"]
        view.pick_image(lambda: store.save(upload))

    return app


def _apply_form(view: ViewController) -> None:
    for name in FORM_FIELDS:
        if name in request.form:
            view.set_field(name, request.form[name])


def _build_store(config: Mapping[str, Any], data_dir: Path) -> KeyValueStore:
    backend = config["RECIPEBOX_STORAGE"]
    if backend == "memory":
        return MemoryKeyValueStore()
    if backend == "firestore":
        from .gcp_storage import FirestoreKeyValueStore

        return FirestoreKeyValueStore.from_env(config)
    return FileKeyValueStore(data_dir)


def _build_image_store(config: Mapping[str, Any], upload_dir: Path) -> ImageStore:
    if config.get("GCS_BUCKET"):
        from .gcp_storage import CloudStorageImageStore

        return CloudStorageImageStore.from_env(config)
    return LocalImageStore(upload_dir)


def _image_src(reference: Optional[str]) -> Optional[str]:
    if not reference:
        return None
    if reference.startswith(UPLOAD_PREFIX):
        return url_for("uploaded_image", name=reference[len(UPLOAD_PREFIX):])
    return reference


__all__ = ["create_app", "Recipe", "ViewController", "ViewState"]
