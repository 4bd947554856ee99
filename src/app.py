import traceback
from typing import Optional

from flask import Flask, jsonify, request

from config import config
from utils.logger import logger
from voice import VoiceTranscriptionPipeline, VoiceWorker, voice_pipeline
from whatsapp import handle_incoming_message, should_process


def create_app(pipeline: Optional[VoiceTranscriptionPipeline] = None, store=None) -> Flask:
    """Build the webhook app.

    Args:
        pipeline: Voice pipeline receiving pending voice registrations
        store: Message persistence callback (defaults to the SQLite store)
    """
    app = Flask(__name__)
    pipeline = pipeline or voice_pipeline

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "up",
            "pending_voice": len(pipeline.registry),
        }), 200

    @app.route("/voice/pending", methods=["GET"])
    def pending_voice():
        return jsonify({
            "count": len(pipeline.registry),
            "capacity": pipeline.registry.capacity,
            "keys": pipeline.registry.keys(),
        }), 200

    @app.route("/webhook", methods=["POST"])
    def webhook():
        body = request.get_json(silent=True) or {}
        payload = body.get("payload", {})
        try:
            if should_process(payload) is False:
                return jsonify({"status": "ok"}), 200

            message = handle_incoming_message(payload, pipeline, store=store)
            return jsonify({"status": "ok", "id": message.id}), 200
        except Exception as e:
            trace = traceback.format_exc()
            logger.error(
                f"Error processing webhook: {e} ::: {payload}\n{trace}")
            return jsonify({"error": str(e)}), 500

    return app


if __name__ == "__main__":
    from messages_db import init_messages_db

    init_messages_db()
    worker = VoiceWorker(voice_pipeline)
    worker.start()
    try:
        create_app().run(host="0.0.0.0", port=int(config.get("PORT", 8765)),
                         debug=True if config.get("LOG_LEVEL") == "DEBUG" else False,
                         use_reloader=False)
    finally:
        worker.stop()
