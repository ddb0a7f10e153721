import logging

from flask import Flask, request, jsonify
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-24s %(levelname)-7s %(message)s",
)

from tripy import init_db
from tripy.db import SessionLocal
from tripy.errors import TripInputError
from tripy.graph.context import TripContext
from tripy.graph.controller import TripPlanner, parse_traveler
from tripy.models import Booking

log = logging.getLogger("tripy.server")


def _body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise TripInputError("request body must be a JSON object")
    return body


def create_app(planner: TripPlanner = None, session_factory=None) -> Flask:
    app = Flask(__name__)
    planner = planner or TripPlanner()
    session_factory = session_factory or SessionLocal

    @app.errorhandler(TripInputError)
    def input_error(e: TripInputError):
        log.info("Rejected request: %s", e)
        return jsonify({"error": str(e)}), 400

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.post("/trip")
    def trip():
        body = _body()
        utterance = body.get("utterance", body.get("message"))

        result = planner.handle_turn(
            utterance,
            context=body.get("context"),
            geolocation=body.get("geolocation"),
            selection=body.get("selection"),
        )
        payload = result.to_payload()
        if result.error_kind == "transient":
            return jsonify(payload), 503
        return jsonify(payload)

    @app.post("/book")
    def book():
        body = _body()
        traveler = parse_traveler(body.get("traveler"))
        result = planner.book(body.get("context"), traveler)

        db = session_factory()
        try:
            db.add(Booking(
                id=result.booking_id,
                status=result.status.value,
                total=result.total,
                currency=result.currency,
                traveler_name=traveler.name,
                traveler_email=traveler.email,
                itinerary=result.itinerary.model_dump(mode="json"),
                legs=[leg.model_dump(mode="json") for leg in result.legs],
            ))
            db.commit()
        finally:
            db.close()

        # the conversation starts over after a booking attempt
        return jsonify({
            "booking": result.model_dump(mode="json"),
            "context": TripContext().to_payload(),
        })

    @app.get("/bookings/<booking_id>")
    def get_booking(booking_id: str):
        db = session_factory()
        try:
            row = db.get(Booking, booking_id)
            if row is None:
                return jsonify({"error": "booking not found"}), 404
            return jsonify(row.to_dict())
        finally:
            db.close()

    return app


app = create_app()


if __name__ == "__main__":
    # Create tables (simple dev mode)
    init_db()
    app.run(host="0.0.0.0", port=5000, debug=True)
