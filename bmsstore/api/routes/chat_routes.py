# bmsstore/api/routes/chat_routes.py
# Stateless AI chat relay; also the channel customers use to file complaints
from flask import Blueprint, current_app, jsonify, request

from bmsstore.api.utils.ai_gateway import AIGatewayError, build_messages, chat_completion
from bmsstore.api.utils.http import to_int
from bmsstore.extensions import db
from bmsstore.models import Complaint

api_chat = Blueprint("api_chat", __name__, url_prefix="/api/ai-chat")


def _register_complaint(data: dict):
    text = str(data.get("text") or data.get("complaint_text") or "").strip()
    if not text:
        return jsonify({"error": "Complaint text is required"}), 500

    image_urls = data.get("imageUrls") or data.get("image_urls") or []
    if not isinstance(image_urls, list):
        image_urls = [image_urls]

    complaint = Complaint(
        customer_id=to_int(data.get("customerId")),
        product_id=to_int(data.get("productId")),
        order_id=to_int(data.get("orderId")),
        complaint_text=text,
        image_urls=[str(u) for u in image_urls if u],
        status="pending",
    )
    db.session.add(complaint)
    db.session.commit()
    current_app.logger.info("Complaint #%s registered via chat", complaint.id)
    return jsonify({
        "response": f"Complaint registered successfully! Your complaint ID is: {complaint.id}",
        "complaintId": complaint.id,
    }), 200


@api_chat.post("")
def ai_chat():
    data = request.get_json(silent=True) or {}
    try:
        if data.get("action") == "register_complaint" and data.get("complaintData"):
            return _register_complaint(data["complaintData"])

        messages = build_messages(
            str(data.get("message") or ""),
            data.get("history") if isinstance(data.get("history"), list) else [],
            data.get("imageData"),
        )
        return jsonify({"response": chat_completion(messages)}), 200
    except AIGatewayError as e:
        current_app.logger.error("ai-chat failed: %s", e)
        return jsonify({"error": str(e)}), 500
    except Exception:
        db.session.rollback()
        current_app.logger.exception("ai-chat failed")
        return jsonify({"error": "Something went wrong, please try again"}), 500
