from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import current_user_id, json_body, login_required, pick
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.template_service

    @app.get("/api/templates", endpoint="template_list")
    @login_required
    def template_list():
        return jsonify({"data": [t.to_dict() for t in service.list_templates(current_user_id())]})

    @app.post("/api/templates", endpoint="template_create")
    @login_required
    def template_create():
        body = json_body()
        template = service.create_template(
            current_user_id(),
            name=body.get("name"),
            description=body.get("description"),
            entries=body.get("entries"),
        )
        return jsonify({"data": template.to_dict()}), 201

    @app.post("/api/templates/from-day/<int:day_id>", endpoint="template_from_day")
    @login_required
    def template_from_day(day_id: int):
        body = json_body()
        template = service.create_from_day(
            current_user_id(),
            day_id,
            name=body.get("name"),
            description=body.get("description"),
        )
        meta = {"source_day_id": day_id, "block_count": len(template.entries)}
        return jsonify({"data": template.to_dict(), "meta": meta}), 201

    @app.get("/api/templates/<int:template_id>", endpoint="template_detail")
    @login_required
    def template_detail(template_id: int):
        return jsonify({"data": service.get_template(current_user_id(), template_id).to_dict()})

    @app.patch("/api/templates/<int:template_id>", endpoint="template_update")
    @login_required
    def template_update(template_id: int):
        body = json_body()
        template = service.update_template(
            current_user_id(),
            template_id,
            **pick(body, "name", "description", "entries"),
        )
        return jsonify({"data": template.to_dict()})

    @app.delete("/api/templates/<int:template_id>", endpoint="template_delete")
    @login_required
    def template_delete(template_id: int):
        service.delete_template(current_user_id(), template_id)
        return "", 204

    @app.post("/api/templates/<int:template_id>/apply", endpoint="template_apply")
    @login_required
    def template_apply(template_id: int):
        body = json_body()
        result = service.apply_template(current_user_id(), template_id, body.get("date"))
        return jsonify(result.to_dict()), 201
