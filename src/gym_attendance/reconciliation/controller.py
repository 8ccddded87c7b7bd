from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import staff_required
from ..container import Container
from ..core.exceptions import NotFoundError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/jobs", methods=["GET"], endpoint="jobs_status")
    @staff_required
    def jobs_status():
        return jsonify({"success": True, "jobs": container.runner.job_names, "scheduler": container.runner.get_status()})

    @app.route("/api/admin/jobs/<name>/run", methods=["POST"], endpoint="jobs_run")
    @staff_required
    def jobs_run(name: str):
        if name not in container.runner.job_names:
            raise NotFoundError(f"Unknown job: {name}")
        affected = container.runner.run_job(name)
        if affected is None:
            return jsonify({"success": False, "message": f"Job {name} failed or is already running"}), 500
        return jsonify({"success": True, "job": name, "affected": affected})
