from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import current_user_id, json_body, login_required, pick
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.post("/api/timer/start", endpoint="timer_start")
    @login_required
    def timer_start():
        body = json_body()
        entry = container.timer_service.start_timer(
            current_user_id(),
            project_id=body.get("project_id"),
            category_id=body.get("category_id"),
            description=body.get("description"),
        )
        return jsonify({"data": entry.to_dict()}), 201

    @app.post("/api/timer/stop", endpoint="timer_stop")
    @login_required
    def timer_stop():
        body = json_body()
        entry = container.timer_service.stop_timer(
            current_user_id(),
            **pick(body, "project_id", "category_id", "description"),
        )
        return jsonify({"data": entry.to_dict()})

    @app.get("/api/timer/active", endpoint="timer_active")
    @login_required
    def timer_active():
        entry = container.timer_service.get_active(current_user_id())
        return jsonify({"data": entry.to_dict() if entry else None})
