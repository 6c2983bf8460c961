import json
import threading

from app.webhook import compute_signature

from conftest import WEBHOOK_SECRET, add_team, gateway_response, load_team


def signed_callback(client, trxid, status):
    raw = json.dumps({"trxid": trxid, "status": status}).encode()
    return client.post(
        "/payment/callback",
        content=raw,
        headers={"X-YoGateway-Signature": compute_signature(raw, WEBHOOK_SECRET)},
    )


def test_full_payment_lifecycle_integration(client, mocker, user_headers, admin_headers, gateway_key):
    """
    1. Start payment (API -> gateway mocked -> trx bound to team)
    2. Webhook SUCCESS (gateway -> API -> PAID)
    3. Poll still sees SUCCESS (no second mutation)
    4. Admin verifies and records the settled payout
    """
    add_team(name="Dapur Nusantara")

    # --- 1. START PAYMENT ---
    mocker.patch("app.gateway.requests.get", return_value=gateway_response(mocker, {
        "status": True, "data": {"trx_id": "YO-INT-1", "payment_url": "https://pay.test/YO-INT-1"},
    }))
    response = client.post("/teams/team-1/payment", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["trx_id"] == "YO-INT-1"

    # Re-registration while pending reuses the same transaction
    again = client.post("/teams/team-1/payment", headers=user_headers)
    assert again.json()["trx_id"] == "YO-INT-1"

    # --- 2. WEBHOOK SUCCESS ---
    webhook_response = signed_callback(client, "YO-INT-1", "SUCCESS")
    assert webhook_response.status_code == 200
    assert webhook_response.json() == {"status": True}

    paid = load_team()
    assert paid.payment_status == "PAID"
    assert paid.paid_at is not None

    # --- 3. POLL ---
    get = mocker.patch("app.gateway.requests.get", return_value=gateway_response(mocker, {
        "status": True, "data": {"status": "SUCCESS"},
    }))
    poll = client.post("/teams/team-1/payment/check", headers=user_headers)
    assert poll.status_code == 200
    assert poll.json()["status"] is True
    assert poll.json()["outcome"] == "NOOP_TERMINAL"
    assert get.call_count == 1
    assert load_team().paid_at == paid.paid_at

    # --- 4. VERIFY + PAYOUT ---
    client.post("/admin/teams/team-1/payment/verify", headers=admin_headers)
    assert signed_callback(client, "YO-INT-1", "EXPIRED").json() == {"status": True}
    assert load_team().payment_status == "VERIFIED"

    payout = client.put(
        "/admin/teams/team-1/payout",
        json={"recorded_amount": 9930, "status": "TRANSFERRED"},
        headers=admin_headers,
    ).json()
    assert float(payout["computed"]["processing_fee_amount"]) == 70
    assert float(payout["computed"]["participant_take_home"]) == 9000


def test_webhook_and_poll_race(client, mocker, user_headers, gateway_key):
    add_team(payment_trx_id="YO-RACE")
    mocker.patch("app.gateway.requests.get", return_value=gateway_response(mocker, {
        "status": True, "data": {"status": "SUCCESS"},
    }))
    barrier = threading.Barrier(2)
    results = {}

    def webhook():
        barrier.wait()
        results["webhook"] = signed_callback(client, "YO-RACE", "SUCCESS")

    def poll():
        barrier.wait()
        results["poll"] = client.post("/teams/team-1/payment/check", headers=user_headers)

    threads = [threading.Thread(target=webhook), threading.Thread(target=poll)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results["webhook"].json() == {"status": True}
    assert results["poll"].json()["status"] is True
    team = load_team()
    assert team.payment_status == "PAID"
    assert team.paid_at is not None

    # exactly one of the two channels performed the transition
    outcome = results["poll"].json()["outcome"]
    assert outcome in ("APPLIED_PAID", "NOOP_TERMINAL")


def test_expired_then_late_success_is_ignored(client, gateway_key):
    add_team(payment_trx_id="YO-1")

    signed_callback(client, "YO-1", "EXPIRED")
    signed_callback(client, "YO-1", "SUCCESS")

    team = load_team()
    assert team.payment_status == "EXPIRED"
    assert team.paid_at is None
