"""
Tests for the Flask JSON API, run against the in-memory store.
"""

import io

import pytest

import app as api
from config.settings import AIConfig
from lakay.ai import ChatAssistant
from lakay.ai.chat import GREETING_RESPONSE
from lakay.notifications import EmailSender


@pytest.fixture
def client(monkeypatch, store, vessel_store, email_sender):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setattr(api, "store", store)
    monkeypatch.setattr(api, "vessel_store", vessel_store)
    monkeypatch.setattr(api, "email_sender", email_sender)
    monkeypatch.setattr(api, "chat_assistant", ChatAssistant(AIConfig()))
    monkeypatch.setattr(api, "order_tracker", None)
    api.app.config["TESTING"] = True
    return api.app.test_client()


ORDER = {
    "customer_name": "Marie Joseph",
    "customer_email": "marie@example.com",
    "shipping_address": "12 Ocean Ave",
    "shipping_city": "Palm Beach",
    "shipping_state": "FL",
    "shipping_zip": "33480",
    "items": [{"vessel_id": "v1", "scent_id": "s1", "unit_price": 45, "quantity": 2}],
}


class TestStorefront:
    def test_products_only_available(self, client, fake_client):
        fake_client.tables["products"] = [
            {"id": "1", "name": "Shown", "is_available": True, "category": "jar"},
            {"id": "2", "name": "Hidden", "is_available": False, "category": "jar"},
        ]
        response = client.get("/api/products?category=jar")
        assert response.status_code == 200
        assert [p["name"] for p in response.get_json()["products"]] == ["Shown"]

    def test_visible_vessels(self, client, vessel_store):
        vessel_store.toggle_visibility("style1")
        vessels = client.get("/api/vessels").get_json()["vessels"]
        assert len(vessels) == 14
        assert "style1" not in [v["id"] for v in vessels]

    def test_create_order(self, client, sent_emails):
        response = client.post("/api/custom-orders", json=ORDER)
        assert response.status_code == 201
        assert response.get_json()["order"]["total"] == 100
        assert sent_emails[0]["to"] == "marie@example.com"

    def test_create_order_missing_fields(self, client):
        response = client.post("/api/custom-orders", json={"customer_name": "A"})
        assert response.status_code == 400
        assert "customer_email" in response.get_json()["fields"]

    def test_book_workshop(self, client):
        response = client.post("/api/workshop-booking", json={
            "name": "Nadine",
            "email": "nadine@example.com",
            "phone": "555-0100",
            "workshopDate": "2026-06-14",
            "packageType": "solo",
        })
        assert response.get_json()["message"] == "Booking confirmed successfully"
        bookings = client.get("/api/workshop-booking?email=nadine@example.com").get_json()["bookings"]
        assert len(bookings) == 1


    def test_tracking_internal(self, client, fake_client):
        fake_client.tables["order_tracking_with_status"] = [
            {"tracking_number": "LL-7", "order_status": "shipped"}
        ]
        data = client.get("/api/tracking/ll-7").get_json()
        assert data["found"] is True
        assert data["source"] == "internal"


class TestAdmin:
    def test_product_crud(self, client, fake_client):
        created = client.post("/api/admin/products", json={"name": "Jar", "price": 30}).get_json()
        product_id = created["product"]["id"]

        updated = client.put(f"/api/admin/products/{product_id}", json={"name": "Jar", "price": 35})
        assert updated.get_json()["product"]["price"] == 35

        assert client.delete(f"/api/admin/products/{product_id}").status_code == 200
        assert client.delete(f"/api/admin/products/{product_id}").status_code == 404

    def test_product_form_blanks(self, client):
        response = client.post("/api/admin/products", json={
            "name": "Jar", "price": "30", "original_price": "", "stock_quantity": None,
        })
        assert response.status_code == 201
        product = response.get_json()["product"]
        assert product["original_price"] is None
        assert product["stock_quantity"] == 0

    def test_update_unknown_product(self, client):
        response = client.put("/api/admin/products/nope", json={"name": "Jar", "price": 35})
        assert response.status_code == 404

    def test_export_csv(self, client, fake_client):
        fake_client.tables["products"] = [{"id": "1", "name": "Jar", "price": 30, "is_available": True}]
        response = client.get("/api/admin/products/export?platform=etsy")
        assert response.mimetype == "text/csv"
        assert "limen-lakay-products-etsy.csv" in response.headers["Content-Disposition"]
        assert response.get_data(as_text=True).startswith('"SKU","Title"')

    def test_label(self, client):
        label = client.get("/api/labels/V-1?name=Bowl").get_json()
        assert label["barcode"] == "V-1"
        assert label["qrCode"].startswith("data:image/png;base64,")

    def test_invoice_flow(self, client):
        created = client.post("/api/admin/invoices", json={
            "customer_name": "Hotel Palms",
            "customer_email": "events@hotelpalms.test",
            "date": "2026-03-01",
            "due_date": "2026-03-31",
            "items": [{"description": "Votives", "quantity": 10, "rate": 12}],
        })
        assert created.status_code == 201
        invoice_id = created.get_json()["invoice"]["id"]

        sent = client.post(f"/api/admin/invoices/{invoice_id}/send").get_json()
        assert sent["invoice"]["status"] == "sent"

        assert client.get("/api/admin/invoices/missing").status_code == 404

    def test_price_calculator(self, client):
        result = client.post("/api/admin/price-calculator", json={
            "wax_cost": 10, "number_of_items": 5, "markup_percentage": 100,
        }).get_json()
        assert result["cost_per_item"] == pytest.approx(2)
        assert result["retail_price"] == pytest.approx(4)

    def test_subscription_export(self, client):
        client.post("/api/admin/subscriptions", json={
            "platform_service": "Shopify",
            "category": "software",
            "amount": 39,
            "expiration_date": "2026-12-01",
        })
        text = client.get("/api/admin/subscriptions/export").get_data(as_text=True)
        assert '"Shopify"' in text

    def test_stats(self, client, fake_client):
        fake_client.tables["products"] = [{"id": "1", "category": "jar"}]
        stats = client.get("/api/admin/stats").get_json()
        assert stats["counts"]["products"] == 1

    def test_stats_store_error(self, client, fake_client):
        fake_client.failures[("products", "select")] = "connection refused"
        response = client.get("/api/admin/stats")
        assert response.status_code == 500
        assert response.get_json() == {"error": "connection refused"}


class TestChatAndFeedback:
    def test_chat_fallback(self, client):
        data = client.post("/api/chat", json={"message": "Hello"}).get_json()
        assert data["success"] is True
        assert data["message"] == GREETING_RESPONSE

    def test_chat_requires_message(self, client):
        assert client.post("/api/chat", json={}).status_code == 400

    def test_chat_messages_notify_business(self, client, sent_emails):
        response = client.post("/api/chat/messages", json={"session_id": "s1", "message": "Hi"})
        assert response.status_code == 201
        assert len(sent_emails) == 1
        client.post("/api/chat/messages", json={
            "session_id": "s1", "message": "Hello!", "sender_type": "support",
        })
        assert len(sent_emails) == 1
        messages = client.get("/api/chat/messages/s1").get_json()["messages"]
        assert [m["message_text"] for m in messages] == ["Hi", "Hello!"]

    def test_feedback_validation(self, client):
        response = client.post("/api/feedback", json={"rating": 7, "comment": "x"})
        assert response.status_code == 400
        assert response.get_json()["fields"] == ["rating"]

    def test_inquiry_requires_contact(self, client):
        response = client.post("/api/inquiries", json={"name": "Ana"})
        assert response.get_json()["fields"] == ["email"]


class TestEmailRoutes:
    def test_send_order_email(self, client, sent_emails):
        response = client.post("/api/orders/send-email", json={
            "type": "confirmation",
            "orderNumber": "ORD-1",
            "to": "a@b.test",
            "customerName": "A",
        })
        assert response.get_json() == {"success": True, "message": "Email sent successfully"}
        assert len(sent_emails) == 1

    def test_send_order_email_not_configured(self, client, monkeypatch, offline_sender):
        monkeypatch.setattr(api, "email_sender", offline_sender)
        response = client.post("/api/orders/send-email", json={
            "type": "confirmation", "orderNumber": "ORD-1", "to": "a@b.test",
        })
        assert response.status_code == 200
        assert response.get_json()["message"] == "Email logged (service not configured)"

    def test_unknown_email_type(self, client):
        response = client.post("/api/orders/send-email", json={
            "type": "nope", "orderNumber": "ORD-1", "to": "a@b.test",
        })
        assert response.status_code == 400

    def test_order_details_escaped(self, client, sent_emails):
        client.post("/api/orders/send-email", json={
            "type": "confirmation",
            "orderNumber": "ORD-1",
            "to": "a@b.test",
            "orderDetails": "<img src=x onerror=alert(1)>",
        })
        html = sent_emails[0]["html"]
        assert "<img" not in html
        assert "&lt;img" in html

    def test_cart_reminder_bad_items(self, client):
        response = client.post("/api/cart-abandonment/send-reminder", json={
            "cartId": "c", "customerEmail": "a@b.test", "reminderType": "first",
            "cartItems": ["Lavender Pillar"],
        })
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid fields"

    def test_cart_reminder_bad_type(self, client):
        response = client.post("/api/cart-abandonment/send-reminder", json={
            "cartId": "c", "customerEmail": "a@b.test", "reminderType": "fourth",
        })
        assert response.status_code == 400


class TestSocial:
    def test_generate_without_brand_voice(self, client):
        data = client.post("/api/social/generate", json={
            "platform": "instagram", "tone": "luxury", "productName": "Amber Glow", "price": 45,
        }).get_json()
        assert data["caption"].startswith("Introducing Amber Glow.")
        assert data["hashtags"][0] == "#LimenLakay"

    def test_generate_unknown_platform(self, client):
        response = client.post("/api/social/generate", json={"platform": "myspace", "brandVoice": {"x": 1}})
        assert response.status_code == 400

    def test_posts_need_month(self, client):
        assert client.get("/api/social/posts?year=2026").status_code == 400

    def test_upload_media(self, client, fake_client):
        response = client.post(
            "/api/social/media",
            data={"file": (io.BytesIO(b"jpegdata"), "pour.jpg"), "metadata": '{"mood": ["calm"]}'},
            content_type="multipart/form-data",
        )
        assert response.status_code == 201
        row = response.get_json()["media"]
        assert row["mood"] == ["calm"]
        assert row["file_type"] == "image"


class TestVesselRoutes:
    def test_images_round_trip(self, client):
        response = client.put("/api/vessel-images", json={"images": {"style1": "data:image/png;base64,AA"}})
        assert response.get_json() == {"success": True, "count": 1}
        assert client.get("/api/vessel-images").get_json()["images"] == {"style1": "data:image/png;base64,AA"}

    def test_images_must_be_object(self, client):
        assert client.put("/api/vessel-images", json={"images": ["a"]}).status_code == 400

    def test_add_and_toggle_vessel(self, client):
        vessel = client.post("/api/admin/vessels", json={"name": "Tall Cylinder"}).get_json()["vessel"]
        assert vessel["id"] == "style16"
        toggled = client.post("/api/admin/vessels/style16/toggle").get_json()["vessel"]
        assert toggled["isVisible"] is False
        assert client.post("/api/admin/vessels/style99/toggle").status_code == 404

    def test_image_upload_not_an_image(self, client):
        response = client.post(
            "/api/admin/vessels/style1/image",
            data={"file": (io.BytesIO(b"nope"), "photo.png")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
        assert response.get_json() == {"error": "Invalid image", "fields": ["file"]}

    def test_import_rejects_garbage(self, client):
        response = client.post("/api/vessel-data/import", json=["nope"])
        assert response.status_code == 400


def test_sender_is_lazy(monkeypatch):
    monkeypatch.setattr(api, "email_sender", None)
    assert isinstance(api.get_email_sender(), EmailSender)


class TestCandleCatalogRoutes:
    def test_scents(self, client, fake_client):
        created = client.post("/api/scents", json={
            "name": "Lavann", "name_english": "Lavender", "notes": "lavender", "description": "Calm",
        })
        assert created.status_code == 201
        scent_id = created.get_json()["scent"]["id"]

        client.patch("/api/scents", json={"scent_id": scent_id, "is_available": False})
        assert client.get("/api/scents?available=true").get_json()["scents"] == []
        assert len(client.get("/api/scents").get_json()["scents"]) == 1

        assert client.delete(f"/api/scents?id={scent_id}").get_json() == {"success": True}
        assert client.delete("/api/scents").status_code == 400

    def test_scent_missing_fields(self, client):
        response = client.post("/api/scents", json={"name": "Lavann"})
        assert response.status_code == 400

    def test_candle_vessels(self, client):
        created = client.post("/api/candle-vessels", json={
            "name": "Bowl", "color": "Grey", "size": "8 oz", "price": 18,
            "image_url": "https://img.test/b.jpg", "stock_quantity": 2,
        })
        assert created.status_code == 201
        vessel_id = created.get_json()["vessel"]["id"]

        assert len(client.get("/api/candle-vessels?available=true").get_json()["vessels"]) == 1
        client.patch("/api/candle-vessels", json={"vessel_id": vessel_id, "stock_quantity": 0})
        assert client.get("/api/candle-vessels?available=true").get_json()["vessels"] == []

        assert client.patch("/api/candle-vessels", json={"vessel_id": "nope"}).status_code == 404
        assert client.delete(f"/api/candle-vessels?id={vessel_id}").status_code == 200
        assert client.delete(f"/api/candle-vessels?id={vessel_id}").status_code == 404

    def test_bulk_import(self, client):
        response = client.post("/api/admin/products/bulk-import", json={"products": [
            {"name": "Jar", "description": "Soy", "category": "jar", "price": 24},
        ]})
        assert response.status_code == 200
        assert response.get_json()["imported"] == 1

    def test_bulk_import_nothing_valid(self, client):
        response = client.post("/api/admin/products/bulk-import", json={"products": [{"name": "Jar"}]})
        assert response.status_code == 400
        assert response.get_json()["failed"] == 1

    def test_bulk_import_not_a_list(self, client):
        assert client.post("/api/admin/products/bulk-import", json=["Jar"]).status_code == 400

    def test_shipping_rate_fallback(self, client, monkeypatch):
        monkeypatch.delenv("UPS_CLIENT_ID", raising=False)
        response = client.post("/api/shipping-rate", json={"toZip": "10001", "toState": "NY"})
        data = response.get_json()
        assert data["fallback"] is True
        assert data["cost"] == 8.99

    def test_shipping_rate_needs_destination(self, client):
        assert client.post("/api/shipping-rate", json={"toZip": "10001"}).status_code == 400
