"""Flask web surface for the feed viewer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from flask import Flask, Response, abort, redirect, request, send_file

from .artifact import FeedLoadError, fetch_artifact
from .config import AppConfig
from .renderers import build_page_html, build_url
from .storage import UserStateStore
from .viewer import (
    View,
    ViewerState,
    filter_by_tag,
    set_search,
    set_view,
    toggle_read,
    toggle_star,
)

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load feed."


def _requested_view(value: Optional[str]) -> View:
    try:
        return View(value or View.NEW.value)
    except ValueError:
        logger.debug("Unknown view %r; showing new items", value)
        return View.NEW


def create_app(config: AppConfig, store: Optional[UserStateStore] = None) -> Flask:
    """Build the viewer application."""
    app = Flask(__name__)
    store = store or UserStateStore.from_url(config.viewer.storage)

    def load_state() -> ViewerState:
        starred_ids, read_ids = store.load()
        state = ViewerState(starred_ids=starred_ids, read_ids=read_ids)
        try:
            state.items = fetch_artifact(config.feed_location, timeout=config.timeout)
        except FeedLoadError as exc:
            logger.error("%s", exc)
            state.error = LOAD_ERROR_MESSAGE
        return state

    def back_to_list():
        return redirect(
            build_url(
                "index",
                view=_requested_view(request.form.get("view")).value,
                q=request.form.get("q", ""),
            )
        )

    @app.get("/")
    def index():
        state = load_state()
        set_view(state, _requested_view(request.args.get("view")))
        set_search(state, request.args.get("q", ""))
        tag = request.args.get("tag")
        if tag:
            filter_by_tag(state, tag)

        html = build_page_html(state, limit=config.viewer.render_limit)
        status = 502 if state.error else 200
        return Response(html, status=status, mimetype="text/html")

    @app.post("/star")
    def star():
        link = request.form.get("link")
        if not link:
            abort(400)
        starred_ids, read_ids = store.load()
        toggle_star(ViewerState(starred_ids=starred_ids, read_ids=read_ids), link, store)
        return back_to_list()

    @app.post("/read")
    def read():
        link = request.form.get("link")
        if not link:
            abort(400)
        starred_ids, read_ids = store.load()
        toggle_read(ViewerState(starred_ids=starred_ids, read_ids=read_ids), link, store)
        return back_to_list()

    @app.get("/feed.json")
    def feed_json():
        location = Path(config.output).resolve()
        if not location.is_file():
            abort(404)
        return send_file(location, mimetype="application/json")

    return app
