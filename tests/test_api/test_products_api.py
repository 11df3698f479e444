"""Tests for the /products routes."""

from conftest import ADMIN, PRODUCER, TRANSPORTER, BUYER, OTHER_BUYER, STRANGER, auth


def setup_cast(client):
    client.put(f"/api/v1/roles/{PRODUCER}", headers=auth(ADMIN),
               json={"role": "producer", "display_name": "Acme Farms"})
    client.put(f"/api/v1/roles/{TRANSPORTER}", headers=auth(ADMIN),
               json={"role": "transporter", "display_name": "Fast Freight"})
    client.post("/api/v1/roles/buyers", headers=auth(BUYER), json={"display_name": "Corner Shop"})
    client.post("/api/v1/roles/buyers", headers=auth(OTHER_BUYER), json={"display_name": "Rival Shop"})


def create_widget(client):
    return client.post("/api/v1/products/", headers=auth(PRODUCER),
                       json={"id": 1, "name": "Widget"})


class TestProductRoutes:

    def test_requires_bearer_token(self, client):
        response = client.post("/api/v1/products/", json={"id": 1, "name": "Widget"})
        assert response.status_code == 401

    def test_rejects_garbage_token(self, client):
        response = client.get("/api/v1/products/1", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_create_and_get(self, client):
        setup_cast(client)
        response = create_widget(client)

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == 1
        assert body["current_status"] == 0
        assert body["producer"] == PRODUCER

        detail = client.get("/api/v1/products/1", headers=auth(STRANGER)).json()
        assert len(detail["history"]) == 1
        assert detail["history"][0]["remark"] == "created"

    def test_out_of_range_ids(self, client):
        setup_cast(client)
        huge = 2**64 - 1

        assert client.get(f"/api/v1/products/{huge}", headers=auth(STRANGER)).status_code == 404
        response = client.post(f"/api/v1/products/{huge}/buy", headers=auth(BUYER))
        assert response.status_code == 404
        response = client.post("/api/v1/products/", headers=auth(PRODUCER),
                               json={"id": huge, "name": "Widget"})
        assert response.status_code == 422

    def test_create_by_non_producer(self, client):
        setup_cast(client)
        response = client.post("/api/v1/products/", headers=auth(BUYER),
                               json={"id": 1, "name": "Widget"})

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "Unauthorized"

    def test_duplicate_id(self, client):
        setup_cast(client)
        create_widget(client)
        response = create_widget(client)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "AlreadyExists"

    def test_zero_id(self, client):
        setup_cast(client)
        response = client.post("/api/v1/products/", headers=auth(PRODUCER),
                               json={"id": 0, "name": "Widget"})
        assert response.json()["detail"]["code"] == "InvalidArgument"

    def test_unknown_product(self, client):
        response = client.get("/api/v1/products/404", headers=auth(STRANGER))
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NotFound"

    def test_list_filters(self, client):
        setup_cast(client)
        create_widget(client)
        client.post("/api/v1/products/", headers=auth(PRODUCER), json={"id": 2, "name": "Gadget"})
        client.post("/api/v1/products/2/buy", headers=auth(BUYER))

        everything = client.get("/api/v1/products/").json()
        assert {p["id"] for p in everything} == {1, 2}

        bought = client.get("/api/v1/products/", params={"buyer": BUYER}).json()
        assert [p["id"] for p in bought] == [2]

        fresh = client.get("/api/v1/products/", params={"current_status": 0}).json()
        assert [p["id"] for p in fresh] == [1]


class TestTransitionRoutes:

    def test_full_lifecycle(self, client):
        setup_cast(client)
        create_widget(client)

        response = client.post("/api/v1/products/1/transitions", headers=auth(BUYER),
                               json={"target_status": 1, "remark": "order #12"})
        assert response.status_code == 200
        assert response.json() == {"id": 1, "status": 1, "history_length": 2}

        response = client.post("/api/v1/products/1/ship", headers=auth(TRANSPORTER),
                               json={"remark": "truck 7"})
        assert response.json()["history_length"] == 3

        response = client.post("/api/v1/products/1/receive", headers=auth(OTHER_BUYER))
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "Unauthorized"

        response = client.post("/api/v1/products/1/receive", headers=auth(BUYER))
        assert response.json() == {"id": 1, "status": 3, "history_length": 4}

        response = client.post("/api/v1/products/1/transitions", headers=auth(BUYER),
                               json={"target_status": 3})
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "InvalidTransition"

        history = client.get("/api/v1/products/1/history", headers=auth(PRODUCER)).json()
        assert [e["status"] for e in history] == [0, 1, 2, 3]
        assert [e["updater"] for e in history] == [PRODUCER, BUYER, TRANSPORTER, BUYER]

    def test_skip_is_invalid_transition(self, client):
        setup_cast(client)
        create_widget(client)

        response = client.post("/api/v1/products/1/transitions", headers=auth(TRANSPORTER),
                               json={"target_status": 2})
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "InvalidTransition"

    def test_unknown_status_value(self, client):
        setup_cast(client)
        create_widget(client)

        response = client.post("/api/v1/products/1/transitions", headers=auth(BUYER),
                               json={"target_status": 9})
        assert response.status_code == 422

    def test_assign_buyer_disabled_by_default(self, client):
        setup_cast(client)
        create_widget(client)

        response = client.put("/api/v1/products/1/buyer", headers=auth(ADMIN),
                              json={"buyer": BUYER})
        assert response.status_code == 403

    def test_notifications_delivered_after_response(self, client, sink):
        setup_cast(client)
        create_widget(client)
        client.get("/api/v1/products/1", headers=auth(STRANGER))

        assert sink.types()[-3:] == ["status_updated", "product_added", "product_queried"]
        assert sink.events[-1].payload == {"querier": STRANGER}
