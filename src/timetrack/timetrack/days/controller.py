from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import current_user_id, json_body, login_required, pick
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.day_service

    @app.post("/api/days", endpoint="day_start")
    @login_required
    def day_start():
        body = json_body()
        day = service.start_day(current_user_id(), body.get("date"), body.get("description"))
        return jsonify({"data": day.to_dict()}), 201

    @app.get("/api/days/active", endpoint="day_active")
    @login_required
    def day_active():
        day = service.get_active_day(current_user_id())
        if not day:
            return jsonify({"data": None})
        return jsonify({"data": service.get_day(current_user_id(), day.day_id).to_dict()})

    @app.get("/api/days/<int:day_id>", endpoint="day_detail")
    @login_required
    def day_detail(day_id: int):
        return jsonify({"data": service.get_day(current_user_id(), day_id).to_dict()})

    @app.post("/api/days/<int:day_id>/end", endpoint="day_end")
    @login_required
    def day_end(day_id: int):
        day = service.end_day(current_user_id(), day_id)
        return jsonify({"data": day.to_dict()})

    @app.post("/api/days/<int:day_id>/blocks", endpoint="block_create")
    @login_required
    def block_create(day_id: int):
        body = json_body()
        block = service.create_block(
            current_user_id(),
            day_id,
            start_time=body.get("start_time"),
            end_time=body.get("end_time"),
            project_id=body.get("project_id"),
            category_id=body.get("category_id"),
            description=body.get("description"),
        )
        return jsonify({"data": block.to_dict()}), 201

    @app.patch("/api/blocks/<int:block_id>", endpoint="block_update")
    @login_required
    def block_update(block_id: int):
        body = json_body()
        block = service.update_block(
            current_user_id(),
            block_id,
            **pick(body, "start_time", "end_time", "project_id", "category_id", "description"),
        )
        return jsonify({"data": block.to_dict()})

    @app.delete("/api/blocks/<int:block_id>", endpoint="block_delete")
    @login_required
    def block_delete(block_id: int):
        service.delete_block(current_user_id(), block_id)
        return "", 204
