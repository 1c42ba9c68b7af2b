#!/usr/bin/env python3
"""
JSON API for the Limen Lakay storefront, admin dashboards and chat widget.

Usage:
    python main.py --serve            # or
    python app.py --port 5000

Then the storefront calls http://localhost:5000/api/...
"""

import argparse
import asyncio
import json
from typing import Optional

from flask import Flask, Response, jsonify, request
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from config.settings import config
from lakay import candles, catalog, invoices, orders, subscriptions, workshops
from lakay.ai import (
    ChatAssistant,
    get_approved_feedback,
    get_chat_messages,
    send_chat_message,
    submit_feedback,
)
from lakay.ai.chat import UNAVAILABLE_MESSAGE
from lakay.barcodes import generate_label
from lakay.db import SupabaseStore
from lakay.errors import NotFoundError, ShopError, ValidationError
from lakay.notifications import EmailSender, notify_business, send_cart_reminder
from lakay.pricing import price_breakdown
from lakay.social import content as social_content
from lakay.social import generate_content, generate_hashtags
from lakay.tracking import OrderTracker, quote_shipping
from lakay.vessels import FileStorage, VesselStore

console = Console()

app = Flask(__name__)

# Created on first use; tests assign their own
store: Optional[SupabaseStore] = None
vessel_store: Optional[VesselStore] = None
email_sender: Optional[EmailSender] = None
chat_assistant: Optional[ChatAssistant] = None
order_tracker: Optional[OrderTracker] = None


def get_store() -> SupabaseStore:
    global store
    if store is None:
        store = SupabaseStore(config.supabase)
    return store


def get_vessel_store() -> VesselStore:
    global vessel_store
    if vessel_store is None:
        config.ensure_dirs()
        storage = FileStorage(config.vessels.path, config.vessels.quota_bytes)
        vessel_store = VesselStore(storage, config.vessels)
    return vessel_store


def get_email_sender() -> EmailSender:
    global email_sender
    if email_sender is None:
        email_sender = EmailSender(config.supabase, config.email)
    return email_sender


def get_chat_assistant() -> ChatAssistant:
    global chat_assistant
    if chat_assistant is None:
        chat_assistant = ChatAssistant(config.ai)
    return chat_assistant


def get_order_tracker() -> OrderTracker:
    global order_tracker
    if order_tracker is None:
        order_tracker = OrderTracker(get_store())
    return order_tracker


def body() -> dict:
    return request.get_json(silent=True) or {}


def csv_response(text: str, filename: str) -> Response:
    return Response(
        text,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================
# ERROR HANDLING
# ============================================


@app.errorhandler(ValidationError)
def handle_validation_error(e: ValidationError):
    payload = {"error": e.message}
    if e.fields:
        payload["fields"] = e.fields
    return jsonify(payload), 400


@app.errorhandler(ShopError)
def handle_shop_error(e: ShopError):
    if e.status_code >= 500:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
    return jsonify({"error": str(e)}), e.status_code


@app.errorhandler(PydanticValidationError)
def handle_model_error(e: PydanticValidationError):
    fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
    return jsonify({"error": "Invalid fields", "fields": fields}), 400


# ============================================
# STOREFRONT
# ============================================


@app.route("/api/products")
def api_products():
    products = catalog.list_products(
        get_store(), category=request.args.get("category"), available_only=True
    )
    return jsonify({"products": products})


@app.route("/api/vessels")
def api_vessels():
    vessels = get_vessel_store().get_visible_vessels()
    return jsonify({"vessels": [v.model_dump(by_alias=True, exclude_none=True) for v in vessels]})


@app.route("/api/scents", methods=["GET"])
def api_scents():
    available = request.args.get("available") == "true"
    return jsonify({"scents": candles.list_scents(get_store(), available_only=available)})


@app.route("/api/scents", methods=["POST"])
def api_create_scent():
    return jsonify({"success": True, "scent": candles.create_scent(get_store(), body())}), 201


@app.route("/api/scents", methods=["PATCH"])
def api_update_scent():
    data = body()
    scent = candles.update_scent(get_store(), data.get("scent_id"), data)
    return jsonify({"success": True, "scent": scent})


@app.route("/api/scents", methods=["DELETE"])
def api_delete_scent():
    if not candles.delete_scent(get_store(), request.args.get("id")):
        return jsonify({"error": "Scent not found"}), 404
    return jsonify({"success": True})


@app.route("/api/candle-vessels", methods=["GET"])
def api_candle_vessels():
    available = request.args.get("available") == "true"
    return jsonify({"vessels": candles.list_vessels(get_store(), available_only=available)})


@app.route("/api/candle-vessels", methods=["POST"])
def api_create_candle_vessel():
    return jsonify({"success": True, "vessel": candles.create_vessel(get_store(), body())}), 201


@app.route("/api/candle-vessels", methods=["PATCH"])
def api_update_candle_vessel():
    data = body()
    vessel = candles.update_vessel(get_store(), data.get("vessel_id"), data)
    return jsonify({"success": True, "vessel": vessel})


@app.route("/api/candle-vessels", methods=["DELETE"])
def api_delete_candle_vessel():
    if not candles.delete_vessel(get_store(), request.args.get("id")):
        return jsonify({"error": "Vessel not found"}), 404
    return jsonify({"success": True})


@app.route("/api/custom-orders", methods=["GET"])
def api_list_orders():
    return jsonify({"orders": orders.list_orders(get_store(), request.args.get("status"))})


@app.route("/api/custom-orders", methods=["POST"])
def api_create_order():
    order = asyncio.run(orders.create_order(get_store(), body(), get_email_sender(), config.shop))
    return jsonify({"success": True, "order": order}), 201


@app.route("/api/custom-orders", methods=["PATCH"])
def api_update_order():
    data = body()
    order = asyncio.run(
        orders.update_order(get_store(), data.get("order_id"), data, get_email_sender())
    )
    return jsonify({"success": True, "order": order})


@app.route("/api/workshop-booking", methods=["GET"])
def api_workshop_bookings():
    bookings = workshops.bookings_for_email(get_store(), request.args.get("email", ""))
    return jsonify({"bookings": bookings})


@app.route("/api/workshop-booking", methods=["POST"])
def api_book_workshop():
    booking = asyncio.run(workshops.create_booking(get_store(), body(), get_email_sender()))
    return jsonify({"success": True, "booking": booking, "message": "Booking confirmed successfully"})


@app.route("/api/workshop-booking/sessions", methods=["GET"])
def api_sessions():
    return jsonify({"sessions": workshops.list_sessions(get_store())})


@app.route("/api/workshop-booking/sessions", methods=["POST"])
def api_create_session():
    session = workshops.create_session(get_store(), body(), config.shop)
    return jsonify({"success": True, "session": session}), 201


@app.route("/api/workshop-booking/sessions", methods=["PUT"])
def api_update_session():
    data = body()
    session = workshops.update_session(get_store(), data.get("id"), data)
    return jsonify({"success": True, "session": session})


@app.route("/api/workshop-booking/email-template", methods=["GET"])
def api_email_template():
    return jsonify({"template": workshops.get_email_template(get_store())})


@app.route("/api/workshop-booking/email-template", methods=["PUT"])
def api_save_email_template():
    data = body()
    template = workshops.save_email_template(get_store(), data.get("subject"), data.get("body"))
    return jsonify({"success": True, "template": template})


# ============================================
# ADMIN: PRODUCTS
# ============================================


@app.route("/api/admin/products", methods=["GET"])
def api_admin_products():
    return jsonify({"products": catalog.list_products(get_store())})


@app.route("/api/admin/products", methods=["POST"])
def api_admin_create_product():
    return jsonify({"success": True, "product": catalog.save_product(get_store(), body())}), 201


@app.route("/api/admin/products/<product_id>", methods=["PUT"])
def api_admin_update_product(product_id):
    product = catalog.save_product(get_store(), body(), product_id=product_id)
    return jsonify({"success": True, "product": product})


@app.route("/api/admin/products/<product_id>", methods=["DELETE"])
def api_admin_delete_product(product_id):
    if not catalog.delete_product(get_store(), product_id):
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"success": True})


@app.route("/api/admin/products/export")
def api_admin_export_products():
    platform = request.args.get("platform", "generic")
    products = catalog.list_products(get_store(), available_only=True)
    return csv_response(
        catalog.export_products_csv(products, platform),
        f"limen-lakay-products-{platform}.csv",
    )


@app.route("/api/admin/products/bulk-import", methods=["GET"])
def api_admin_bulk_import_info():
    return jsonify({
        "message": "Bulk import endpoint is ready",
        "requiredFields": list(catalog.BULK_REQUIRED_FIELDS),
    })


@app.route("/api/admin/products/bulk-import", methods=["POST"])
def api_admin_bulk_import():
    data = body()
    rows = data.get("products") if isinstance(data, dict) else None
    result = catalog.bulk_import_products(get_store(), rows)
    return jsonify(result), 200 if result["imported"] else 400


@app.route("/api/labels/<sku>")
def api_label(sku):
    return jsonify(generate_label(sku, request.args.get("name"), request.args.get("url")))


# ============================================
# ADMIN: INVOICES
# ============================================


@app.route("/api/admin/invoices", methods=["GET"])
def api_invoices():
    return jsonify({"invoices": invoices.list_invoices(get_store(), request.args.get("search"))})


@app.route("/api/admin/invoices/new", methods=["GET"])
def api_new_invoice():
    return jsonify({"invoice": invoices.new_invoice(shop=config.shop)})


@app.route("/api/admin/invoices", methods=["POST"])
def api_create_invoice():
    return jsonify({"success": True, "invoice": invoices.save_invoice(get_store(), body())}), 201


@app.route("/api/admin/invoices/<invoice_id>", methods=["GET"])
def api_invoice(invoice_id):
    return jsonify({"invoice": invoices.get_invoice(get_store(), invoice_id)})


@app.route("/api/admin/invoices/<invoice_id>", methods=["PUT"])
def api_update_invoice(invoice_id):
    invoice = invoices.save_invoice(get_store(), body(), invoice_id=invoice_id)
    return jsonify({"success": True, "invoice": invoice})


@app.route("/api/admin/invoices/<invoice_id>", methods=["DELETE"])
def api_delete_invoice(invoice_id):
    invoices.delete_invoice(get_store(), invoice_id)
    return jsonify({"success": True})


@app.route("/api/admin/invoices/<invoice_id>/send", methods=["POST"])
def api_send_invoice(invoice_id):
    return jsonify({"success": True, "invoice": invoices.mark_sent(get_store(), invoice_id)})


@app.route("/api/admin/invoices/<invoice_id>/paid", methods=["POST"])
def api_pay_invoice(invoice_id):
    return jsonify({"success": True, "invoice": invoices.mark_paid(get_store(), invoice_id)})


@app.route("/api/admin/invoices/<invoice_id>/duplicate", methods=["POST"])
def api_duplicate_invoice(invoice_id):
    return jsonify({"success": True, "invoice": invoices.duplicate_invoice(get_store(), invoice_id)}), 201


@app.route("/api/admin/invoices/mark-overdue", methods=["POST"])
def api_mark_overdue():
    return jsonify({"success": True, "overdue": invoices.mark_overdue(get_store())})


# ============================================
# ADMIN: SUBSCRIPTIONS
# ============================================


def _filtered_subscriptions() -> list[dict]:
    return subscriptions.filter_subscriptions(
        subscriptions.list_subscriptions(get_store()),
        search=request.args.get("search", ""),
        category=request.args.get("category"),
    )


@app.route("/api/admin/subscriptions", methods=["GET"])
def api_subscriptions():
    return jsonify({"subscriptions": subscriptions.annotate(_filtered_subscriptions())})


@app.route("/api/admin/subscriptions", methods=["POST"])
def api_create_subscription():
    sub = subscriptions.save_subscription(get_store(), body())
    return jsonify({"success": True, "subscription": sub}), 201


@app.route("/api/admin/subscriptions/<subscription_id>", methods=["PUT"])
def api_update_subscription(subscription_id):
    sub = subscriptions.save_subscription(get_store(), body(), subscription_id)
    return jsonify({"success": True, "subscription": sub})


@app.route("/api/admin/subscriptions/<subscription_id>", methods=["DELETE"])
def api_delete_subscription(subscription_id):
    subscriptions.delete_subscription(get_store(), subscription_id)
    return jsonify({"success": True})


@app.route("/api/admin/subscriptions/summary")
def api_subscription_summary():
    return jsonify(subscriptions.summary(get_store()))


@app.route("/api/admin/subscriptions/export")
def api_export_subscriptions():
    return csv_response(subscriptions.export_csv(_filtered_subscriptions()), "subscriptions.csv")


# ============================================
# ADMIN: MISC
# ============================================


@app.route("/api/admin/brand-voice", methods=["GET"])
def api_brand_voice():
    voice = social_content.get_brand_voice(get_store())
    return jsonify({"brandVoice": voice.model_dump()})


@app.route("/api/admin/brand-voice", methods=["PUT"])
def api_save_brand_voice():
    data = body()
    if not data.get("id"):
        raise ValidationError("Missing required fields", ["id"])
    row = social_content.save_brand_voice(get_store(), data["id"], data)
    return jsonify({"success": True, "brandVoice": row})


@app.route("/api/admin/price-calculator", methods=["POST"])
def api_price_calculator():
    return jsonify(price_breakdown(body()).to_dict())


@app.route("/api/admin/stats")
def api_stats():
    return jsonify(get_store().get_stats())


# ============================================
# CHAT WIDGET
# ============================================


@app.route("/api/chat", methods=["POST"])
def api_chat():
    data = body()
    message = data.get("message")
    if not message:
        return jsonify({"error": "Message is required"}), 400
    try:
        reply = asyncio.run(get_chat_assistant().reply(message, data.get("conversationHistory")))
    except Exception as e:
        console.print(f"[red]Chat error: {e}[/red]")
        return jsonify({"success": False, "message": UNAVAILABLE_MESSAGE})
    return jsonify(reply.to_dict())


@app.route("/api/chat/messages", methods=["POST"])
def api_send_chat_message():
    data = body()
    row = send_chat_message(
        get_store(),
        data.get("session_id", ""),
        data.get("message", ""),
        sender_type=data.get("sender_type", "customer"),
        sender_name=data.get("sender_name"),
        sender_email=data.get("sender_email"),
    )
    if row.get("sender_type", "customer") == "customer":
        asyncio.run(notify_business(get_email_sender(), "chat", row))
    return jsonify({"success": True, "message": row}), 201


@app.route("/api/chat/messages/<session_id>")
def api_chat_messages(session_id):
    return jsonify({"messages": get_chat_messages(get_store(), session_id)})


@app.route("/api/tracking/<tracking_number>")
def api_tracking(tracking_number):
    return jsonify(asyncio.run(get_order_tracker().lookup(tracking_number)))


@app.route("/api/shipping-rate", methods=["POST"])
def api_shipping_rate():
    return jsonify(asyncio.run(quote_shipping(body(), get_order_tracker().ups)))


@app.route("/api/feedback", methods=["POST"])
def api_feedback():
    data = body()
    row = submit_feedback(get_store(), data)
    asyncio.run(notify_business(get_email_sender(), "feedback", data))
    return jsonify({"success": True, "feedback": row}), 201


@app.route("/api/feedback", methods=["GET"])
def api_approved_feedback():
    return jsonify({"feedback": get_approved_feedback(get_store())})


@app.route("/api/inquiries", methods=["POST"])
def api_inquiry():
    data = body()
    if not data.get("name") or not data.get("email"):
        raise ValidationError("Missing required fields", [k for k in ("name", "email") if not data.get(k)])
    result = asyncio.run(notify_business(get_email_sender(), "inquiry", data))
    return jsonify(result.to_dict())


# ============================================
# EMAIL
# ============================================


@app.route("/api/orders/send-email", methods=["POST"])
def api_send_order_email():
    sender = get_email_sender()
    try:
        result = asyncio.run(orders.send_order_email(sender, body()))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if not sender.is_configured:
        return jsonify({**result.to_dict(), "message": "Email logged (service not configured)"})
    if not result.success:
        return jsonify(result.to_dict()), 500
    return jsonify({"success": True, "message": "Email sent successfully"})


@app.route("/api/cart-abandonment/send-reminder", methods=["POST"])
def api_cart_reminder():
    try:
        result = asyncio.run(send_cart_reminder(get_email_sender(), body(), config.shop.site_url))
    except PydanticValidationError:
        raise
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(result)


# ============================================
# SOCIAL MEDIA
# ============================================


@app.route("/api/social/generate", methods=["POST"])
def api_social_generate():
    data = body()
    if not data.get("brandVoice") and not data.get("brand_voice"):
        try:
            data["brandVoice"] = social_content.get_brand_voice(get_store()).model_dump()
        except NotFoundError:
            console.print("[yellow]Warning: No active brand voice, using defaults[/yellow]")
    try:
        caption = generate_content(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    hashtags = generate_hashtags(
        data.get("recipe"),
        data.get("mediaAsset") or data.get("media_asset"),
        data.get("waxType") or data.get("wax_type") or "soy",
    )
    return jsonify({"caption": caption, "hashtags": hashtags})


@app.route("/api/social/story-angles")
def api_story_angles():
    return jsonify({"storyAngles": social_content.get_story_angles(get_store())})


@app.route("/api/social/media", methods=["GET"])
def api_media_assets():
    return jsonify({"media": social_content.list_media_assets(get_store())})


@app.route("/api/social/media", methods=["POST"])
def api_upload_media():
    upload = request.files.get("file")
    if upload is None:
        raise ValidationError("Missing required fields", ["file"])
    metadata = json.loads(request.form.get("metadata") or "{}")
    row = social_content.upload_media_asset(
        get_store(), upload.filename or "upload", upload.read(), upload.mimetype, metadata
    )
    return jsonify({"success": True, "media": row}), 201


@app.route("/api/social/posts", methods=["POST"])
def api_schedule_post():
    return jsonify({"success": True, "post": social_content.schedule_post(get_store(), body())}), 201


@app.route("/api/social/posts", methods=["GET"])
def api_posts_for_month():
    try:
        year = int(request.args["year"])
        month = int(request.args["month"])
    except (KeyError, ValueError):
        raise ValidationError("Missing required fields", ["year", "month"])
    return jsonify({"posts": social_content.posts_for_month(get_store(), year, month)})


# ============================================
# VESSEL IMAGES
# ============================================


@app.route("/api/vessel-images", methods=["GET"])
def api_vessel_images():
    return jsonify({"images": get_vessel_store().get_vessel_images()})


@app.route("/api/vessel-images", methods=["PUT"])
def api_save_vessel_images():
    images = body().get("images")
    if not isinstance(images, dict):
        raise ValidationError("Missing required fields", ["images"])
    get_vessel_store().save_vessel_images(images)
    return jsonify({"success": True, "count": len(images)})


@app.route("/api/vessel-images/recover", methods=["POST"])
def api_recover_vessel_images():
    images = get_vessel_store().recover_vessel_images()
    return jsonify({"success": bool(images), "count": len(images), "images": images})


@app.route("/api/vessel-data/export")
def api_export_vessel_data():
    return jsonify(get_vessel_store().export_data())


@app.route("/api/vessel-data/import", methods=["POST"])
def api_import_vessel_data():
    if not get_vessel_store().import_data(request.get_json(silent=True)):
        return jsonify({"success": False, "error": "Failed to import vessel data"}), 400
    return jsonify({"success": True})


@app.route("/api/admin/vessels", methods=["GET"])
def api_admin_vessels():
    vessels = get_vessel_store().get_vessels()
    return jsonify({"vessels": [v.model_dump(by_alias=True, exclude_none=True) for v in vessels]})


@app.route("/api/admin/vessels", methods=["POST"])
def api_add_vessel():
    data = body()
    vessel = get_vessel_store().add_vessel(data.get("name"), data.get("description"))
    return jsonify({"success": True, "vessel": vessel.model_dump(by_alias=True)}), 201


@app.route("/api/admin/vessels/<vessel_id>", methods=["PUT"])
def api_update_vessel(vessel_id):
    data = body()
    changes = {k: data[k] for k in ("name", "description") if k in data}
    try:
        vessel = get_vessel_store().update_vessel(vessel_id, **changes)
    except KeyError:
        return jsonify({"error": "Vessel not found"}), 404
    return jsonify({"success": True, "vessel": vessel.model_dump(by_alias=True)})


@app.route("/api/admin/vessels/<vessel_id>/toggle", methods=["POST"])
def api_toggle_vessel(vessel_id):
    try:
        vessel = get_vessel_store().toggle_visibility(vessel_id)
    except KeyError:
        return jsonify({"error": "Vessel not found"}), 404
    return jsonify({"success": True, "vessel": vessel.model_dump(by_alias=True)})


@app.route("/api/admin/vessels/<vessel_id>", methods=["DELETE"])
def api_delete_vessel(vessel_id):
    get_vessel_store().delete_vessel(vessel_id)
    return jsonify({"success": True})


@app.route("/api/admin/vessels/<vessel_id>/image", methods=["POST"])
def api_vessel_image(vessel_id):
    upload = request.files.get("file")
    if upload is None:
        raise ValidationError("Missing required fields", ["file"])
    data_url = get_vessel_store().set_vessel_image(vessel_id, upload.read())
    return jsonify({"success": True, "image": data_url})


def parse_args():
    parser = argparse.ArgumentParser(description="Limen Lakay API server")
    parser.add_argument("--port", type=int, default=5000, help="Port to listen on")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    console.print(f"[bold cyan]Limen Lakay API[/bold cyan] on http://localhost:{args.port}")
    app.run(debug=args.debug, port=args.port)
