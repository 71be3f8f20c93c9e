import os

from flask import Blueprint, current_app, send_from_directory

from payroll_api.services.signature_store import SignatureStore

bp = Blueprint("uploads", __name__)


@bp.get("/uploads/signatures/<path:filename>")
def signature_file(filename: str):
    directory = os.path.join(current_app.config["UPLOADS_ROOT"], SignatureStore.SUBDIR)
    # send_from_directory rejects paths escaping the directory
    return send_from_directory(directory, filename)
