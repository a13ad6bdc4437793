from datetime import datetime

BASE = "/api/partyInteraction"


def _ts(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


# ---------- create ----------
def test_create_returns_201_with_generated_id_and_href(client, make_payload):
    resp = client.post(BASE, json=make_payload())
    assert resp.status_code == 201
    body = resp.json()
    assert body["id"]
    assert body["id"] in body["href"]
    assert body["href"].endswith(f"/api/partyInteraction/{body['id']}")
    assert body["status"] == "opened"
    assert body["priority"] == "medium"
    assert body["createdAt"] and body["updatedAt"]


def test_create_ignores_client_supplied_id(client, make_payload):
    resp = client.post(BASE, json=make_payload(id="mine", href="http://evil/x"))
    assert resp.status_code == 201
    body = resp.json()
    assert body["id"] != "mine"
    assert "evil" not in body["href"]


def test_create_also_accepts_trailing_slash(client, make_payload):
    assert client.post(BASE + "/", json=make_payload()).status_code == 201


def test_create_missing_required_fields_is_400(client, make_payload):
    for field in ("description", "reason", "direction", "interactionDate"):
        payload = make_payload()
        payload.pop(field)
        resp = client.post(BASE, json=payload)
        assert resp.status_code == 400, field
        assert field in resp.json()["error"]


def test_create_empty_description_is_400(client, make_payload):
    assert client.post(BASE, json=make_payload(description="")).status_code == 400


def test_create_related_party_without_name_is_400(client, make_payload):
    payload = make_payload()
    del payload["relatedParty"][0]["partyOrPartyRole"]["name"]
    resp = client.post(BASE, json=payload)
    assert resp.status_code == 400
    assert "name" in resp.json()["error"]


def test_create_invalid_enums_are_400(client, make_payload):
    assert client.post(BASE, json=make_payload(status="archived")).status_code == 400
    assert client.post(BASE, json=make_payload(direction="sideways")).status_code == 400
    assert client.post(BASE, json=make_payload(priority="critical")).status_code == 400
    bad_channel = make_payload(relatedChannel=[{"channel": {"name": "fax"}}])
    assert client.post(BASE, json=bad_channel).status_code == 400


def test_create_assigns_sub_ids_and_note_dates(client, make_payload):
    payload = make_payload(
        interactionItem=[
            {"reason": "Wrong charge", "itemDate": {"startDateTime": "2024-01-01T10:05:00Z"}},
            {"id": "item-keep", "reason": "Refund", "itemDate": {"startDateTime": "2024-01-01T10:10:00Z"}},
        ],
        note=[
            {"text": "First contact", "author": "agent-7"},
            {"id": "note-keep", "text": "Second", "author": "agent-7", "date": "2024-01-01T11:00:00Z"},
        ],
    )
    created = client.post(BASE, json=payload).json()

    fetched = client.get(f"{BASE}/{created['id']}").json()
    items = fetched["interactionItem"]
    assert items[0]["id"] and items[0]["id"] != "item-keep"
    assert items[0]["status"] == "pending"
    assert items[1]["id"] == "item-keep"

    notes = fetched["note"]
    assert notes[0]["id"] and notes[0]["date"]
    assert notes[1]["id"] == "note-keep"
    assert notes[1]["date"].startswith("2024-01-01T11:00:00")


# ---------- read ----------
def test_get_returns_submitted_values(client, create):
    created = create(category="billing", subCategory="overcharge", tags=["vip", "vip", "retry"])
    body = client.get(f"{BASE}/{created['id']}").json()
    assert body["description"] == "Customer called about a billing discrepancy"
    assert body["category"] == "billing"
    assert body["subCategory"] == "overcharge"
    assert body["tags"] == ["vip", "retry"]
    assert [p["partyOrPartyRole"]["id"] for p in body["relatedParty"]] == ["cust-1", "agent-7"]
    assert body["relatedChannel"][0]["channel"]["name"] == "phone"


def test_get_unknown_id_is_404(client):
    resp = client.get(f"{BASE}/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Interaction not found"}


def test_duration_in_minutes(client, create):
    ended = create(interactionDate={
        "startDateTime": "2024-01-01T10:00",
        "endDateTime": "2024-01-01T10:45",
    })
    assert ended["duration"] == 45
    open_ = create()
    assert open_["duration"] is None


def test_duration_rounds_half_minutes_up(client, create):
    two_and_a_half = create(interactionDate={
        "startDateTime": "2024-01-01T10:00:00Z",
        "endDateTime": "2024-01-01T10:02:30Z",
    })
    assert two_and_a_half["duration"] == 3
    half = create(interactionDate={
        "startDateTime": "2024-01-01T10:00:00Z",
        "endDateTime": "2024-01-01T10:00:30Z",
    })
    assert half["duration"] == 1


def test_naive_timestamps_are_returned_as_utc(client, create):
    created = create(interactionDate={"startDateTime": "2024-01-01T10:00"})
    assert created["interactionDate"]["startDateTime"] == "2024-01-01T10:00:00Z"


# ---------- update ----------
def test_patch_updates_fields_and_bumps_updated_at(client, create):
    created = create()
    resp = client.patch(f"{BASE}/{created['id']}", json={"status": "completed", "priority": "high"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "completed"
    assert body["priority"] == "high"
    assert body["description"] == created["description"]
    assert _ts(body["updatedAt"]) >= _ts(created["updatedAt"])
    assert body["createdAt"] == created["createdAt"]


def test_patch_replaces_list_fields_wholesale(client, create):
    created = create()
    new_party = {
        "role": "supervisor",
        "partyOrPartyRole": {"id": "sup-1", "name": "Lin", "referredType": "Individual"},
    }
    body = client.patch(f"{BASE}/{created['id']}", json={"relatedParty": [new_party]}).json()
    assert [p["partyOrPartyRole"]["id"] for p in body["relatedParty"]] == ["sup-1"]

    # the party index follows the replacement
    assert client.get(BASE, params={"partyId": "cust-1"}).json()["pagination"]["total"] == 0
    assert client.get(BASE, params={"partyId": "sup-1"}).json()["pagination"]["total"] == 1


def test_patch_cannot_change_id_or_href(client, create):
    created = create()
    body = client.patch(f"{BASE}/{created['id']}", json={"id": "x", "href": "y", "reason": "Refund"}).json()
    assert body["id"] == created["id"]
    assert body["href"] == created["href"]
    assert body["reason"] == "Refund"


def test_patch_invalid_values_are_400(client, create):
    created = create()
    assert client.patch(f"{BASE}/{created['id']}", json={"status": "archived"}).status_code == 400
    # nulling a required field fails re-validation of the merged record
    assert client.patch(f"{BASE}/{created['id']}", json={"description": None}).status_code == 400
    assert client.get(f"{BASE}/{created['id']}").json()["description"] == created["description"]


def test_patch_unknown_id_is_404(client):
    assert client.patch(f"{BASE}/nope", json={"status": "completed"}).status_code == 404


# ---------- delete ----------
def test_delete_then_get_is_404(client, create):
    created = create()
    resp = client.delete(f"{BASE}/{created['id']}")
    assert resp.status_code == 204
    assert resp.content == b""
    assert client.get(f"{BASE}/{created['id']}").status_code == 404


def test_delete_unknown_id_is_404(client):
    assert client.delete(f"{BASE}/nope").status_code == 404


# ---------- notes ----------
def test_add_note_returns_201_and_appends(client, create):
    created = create(note=[{"text": "opening note", "author": "agent-7"}])
    resp = client.post(f"{BASE}/{created['id']}/notes", json={"text": "Called back", "author": "agent-7"})
    assert resp.status_code == 201
    note = resp.json()
    assert note["id"] and note["date"]
    assert note["text"] == "Called back"

    notes = client.get(f"{BASE}/{created['id']}").json()["note"]
    assert [n["text"] for n in notes] == ["opening note", "Called back"]
    assert notes[-1]["id"] == note["id"]


def test_add_note_missing_text_or_author_is_400_and_leaves_notes(client, create):
    created = create()
    for body in ({"text": "", "author": "a"}, {"text": "t", "author": ""}, {"text": "t"}, {}):
        resp = client.post(f"{BASE}/{created['id']}/notes", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Text and author are required"
    assert client.get(f"{BASE}/{created['id']}").json()["note"] == []


def test_add_note_unknown_id_is_404(client):
    resp = client.post(f"{BASE}/nope/notes", json={"text": "t", "author": "a"})
    assert resp.status_code == 404


# ---------- misc ----------
def test_health_and_root(client):
    assert client.get("/api/health").json() == {"status": "OK", "message": "Party Interaction API is running"}
    root = client.get("/")
    assert root.status_code == 200
    assert root.headers["content-type"].startswith("text/plain")
    assert "Party Interaction" in root.text


def test_unexpected_failure_is_500_with_message(client, monkeypatch):
    from interaction_api.crud import party_interaction as crud

    def boom(db, interaction_id):
        raise RuntimeError("storage unavailable")

    monkeypatch.setattr(crud, "get_by_id", boom)
    resp = client.get(f"{BASE}/anything")
    assert resp.status_code == 500
    assert resp.json() == {"error": "storage unavailable"}


def test_500_carries_cors_headers(client, monkeypatch):
    from interaction_api.crud import party_interaction as crud

    def boom(db):
        raise RuntimeError("aggregation failed")

    monkeypatch.setattr(crud, "summary_stats", boom)
    resp = client.get(f"{BASE}/stats/summary", headers={"Origin": "http://ui.test"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "aggregation failed"}
    assert "access-control-allow-origin" in resp.headers
