"""Example: Flask app emitting one wide event per request.

Run with ``WIDELOG_SAMPLE_RATE=1 flask --app examples/flask_app.py run``.
"""

from __future__ import annotations

import sqlite3

from flask import Flask, abort

import widelog
from widelog.flask_ext import register_flask_wide_logger
from widelog.interceptors import instrument_connection


def create_app() -> Flask:
    app = Flask(__name__)
    widelog.configure(service="orders-api")
    register_flask_wide_logger(app)

    db = instrument_connection(sqlite3.connect(":memory:", check_same_thread=False), target="orders")
    db.executescript(
        "CREATE TABLE orders (id TEXT PRIMARY KEY, amount INTEGER);"
        "INSERT INTO orders VALUES ('23523', 9999);"
    )

    @app.get("/api/orders/<order_id>")
    def get_order(order_id: str):
        widelog.update(resource_type="order", resource_id=order_id, operation_type="read")
        row = db.execute("SELECT amount FROM orders WHERE id = ?", (order_id,)).fetchone()
        if row is None:
            abort(404)
        widelog.merge_details(amount=row[0])
        return {"id": order_id, "amount": row[0]}

    @app.get("/health")
    def health():
        return "ok"

    return app


app = create_app()
