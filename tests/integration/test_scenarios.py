"""End-to-end flows through the HTTP API with real services over in-memory stores."""

import json
from unittest.mock import AsyncMock, Mock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from golive.exceptions import ConflictError
from golive.lambda_handler import resume_teardown
from golive.main import app
from golive.services.access_service import AccessService
from golive.services.event_service import EventService
from golive.services.payment_service import PaymentService
from golive.services.playback_service import PlaybackService
from golive.services.teardown import TeardownPipeline
from tests.fakes import admin_headers, no_sleep

LIVE_HANDLES = {
    "provisioningStatus": "ready",
    "liveChannelId": "ch-1",
    "inputId": "in-1",
    "inputSecurityGroupId": "sg-1",
    "packagerChannelId": "pc-1",
    "packagerEndpointId": "ep-1",
    "distributionId": "dist-1",
    "originId": "origin-1",
    "cacheBehaviorIds": ["/live/e/*"],
    "cloudFrontUrl": "https://cdn/live/index.m3u8",
}


@pytest.fixture
def wired(events, secrets, viewers, payments, mailer, provisioner, gateway, media, clock):
    """Route service classes bound to the shared fakes."""
    targets = {
        "golive.routes.events.EventService": lambda: EventService(
            repository=events, secrets=secrets, provisioner=provisioner, clock=clock
        ),
        "golive.routes.events.TeardownPipeline": lambda: TeardownPipeline(
            events=events, secrets=secrets, media=media, clock=clock, sleep=no_sleep
        ),
        "golive.routes.playback.AccessService": lambda: AccessService(
            events=events, viewers=viewers, secrets=secrets, mailer=mailer, clock=clock
        ),
        "golive.routes.playback.PlaybackService": lambda: PlaybackService(
            events=events, viewers=viewers, clock=clock
        ),
        "golive.routes.payments.PaymentService": lambda: PaymentService(
            payments=payments, viewers=viewers, events=events, gateway=gateway, clock=clock
        ),
    }
    patchers = [patch(target, new=factory) for target, factory in targets.items()]
    for patcher in patchers:
        patcher.start()
    yield
    for patcher in patchers:
        patcher.stop()


@pytest.fixture
async def client(wired):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def create_event(client, **body):
    payload = {"title": "Match", "description": "Court one", "eventType": "live", **body}
    response = await client.post("/api/events/create", json=payload, headers=admin_headers())
    assert response.status_code == 201, response.text
    return response.json()["eventId"]


async def provision(client, event_id):
    response = await client.put(f"/api/events/resources/{event_id}", json=LIVE_HANDLES, headers=admin_headers())
    assert response.status_code == 200


async def register(client, event_id, **body):
    return await client.post(f"/api/playback/event/{event_id}/register", json=body)


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def gateway_webhook(event_type, payment_id, created_at, **obj):
    return json.dumps(
        {
            "id": f"evt_{event_type}",
            "type": event_type,
            "data": {"object": {"metadata": {"paymentId": payment_id, "createdAt": created_at}, **obj}},
        }
    )


async def deliver(client, body):
    return await client.post("/api/payments/stripe/webhook", content=body, headers={"Stripe-Signature": "t=1,v1=x"})


@pytest.mark.asyncio
async def test_free_access_vod(client):
    event_id = await create_event(
        client,
        eventType="vod",
        accessMode="freeAccess",
        s3Key="v/a.mp4",
        vodStatus="READY",
        vodCloudFrontUrl="https://cdn/a.m3u8",
    )

    registered = await register(client, event_id, clientViewerId="c1")
    assert registered.status_code == 201
    assert registered.json()["accessVerified"] is True

    stream = await client.get(
        f"/api/playback/event/{event_id}/stream", headers=bearer(registered.json()["viewerToken"])
    )
    assert stream.status_code == 200
    assert stream.json() == {
        "success": True,
        "streamUrl": "https://cdn/a.m3u8",
        "playbackType": "vod",
        "eventType": "vod",
    }


@pytest.mark.asyncio
async def test_password_access_email_then_verify(client, mailer, events):
    event_id = await create_event(client, accessMode="passwordAccess", accessPassword="P@ss")
    assert "P@ss" not in json.dumps(events.events[event_id].to_item(), default=str)
    await provision(client, event_id)

    registered = await register(
        client, event_id, clientViewerId="c2", email="a@x", formData={"firstName": "A", "lastName": "B"}
    )
    assert registered.status_code == 201
    assert registered.json()["steps"]["passwordVerified"] is False
    assert mailer.sent[0]["password"] == "P@ss"
    assert mailer.sent[0]["email"] == "a@x"
    headers = bearer(registered.json()["viewerToken"])

    blocked = await client.get(f"/api/playback/event/{event_id}/stream", headers=headers)
    assert blocked.status_code == 403

    wrong = await client.post(
        f"/api/playback/event/{event_id}/verify-password", json={"password": "WRONG"}, headers=headers
    )
    assert wrong.status_code == 401

    right = await client.post(
        f"/api/playback/event/{event_id}/verify-password", json={"password": "P@ss"}, headers=headers
    )
    assert right.status_code == 200
    assert right.json()["accessVerified"] is True

    stream = await client.get(f"/api/playback/event/{event_id}/stream", headers=headers)
    assert stream.status_code == 200
    assert stream.json()["streamUrl"] == "https://cdn/live/index.m3u8"
    assert stream.json()["playbackType"] == "live"


@pytest.mark.asyncio
async def test_paid_access_webhook_replay(client, payments, viewers):
    event_id = await create_event(
        client, accessMode="paidAccess", paymentAmount=10.00, currency="USD", accessPassword="pwd"
    )
    registered = await register(client, event_id, clientViewerId="c3", email="c3@example.com")
    headers = bearer(registered.json()["viewerToken"])

    checkout = await client.post(f"/api/payments/{event_id}/create-session", headers=headers)
    assert checkout.status_code == 200
    payment_id, created_at = checkout.json()["paymentId"], checkout.json()["createdAt"]
    assert checkout.json()["status"] == "pending"
    assert payments.payments[(payment_id, created_at)].amount_minor == 1000

    completed = gateway_webhook("checkout.session.completed", payment_id, created_at, payment_status="paid")
    first = await deliver(client, completed)
    second = await deliver(client, completed)
    assert first.json()["outcome"] == "processed"
    assert second.json()["outcome"] == "replayed"
    assert payments.transitions == [(payment_id, "succeeded")]
    assert viewers.viewers[(event_id, "c3")].is_paid_viewer is True

    expired = await deliver(client, gateway_webhook("checkout.session.expired", payment_id, created_at))
    assert expired.status_code == 200
    assert payments.payments[(payment_id, created_at)].status == "succeeded"
    assert viewers.viewers[(event_id, "c3")].is_paid_viewer is True

    verify = await client.get(f"/api/payments/{event_id}/verify", headers=headers)
    assert verify.json()["isPaidViewer"] is True


@pytest.mark.asyncio
async def test_scheduled_event_before_start(client):
    event_id = await create_event(
        client, eventType="scheduled", accessMode="freeAccess", startTime="2030-01-15T13:00:00Z"
    )
    registered = await register(client, event_id, clientViewerId="c4")

    stream = await client.get(
        f"/api/playback/event/{event_id}/stream", headers=bearer(registered.json()["viewerToken"])
    )

    assert stream.status_code == 403
    assert stream.json()["message"] == "Event has not started yet"


@pytest.mark.asyncio
async def test_identity_reuse_across_devices(client, payments):
    event_id = await create_event(
        client, accessMode="paidAccess", paymentAmount="4.50", currency="usd", accessPassword="pwd"
    )
    await provision(client, event_id)
    first = await register(client, event_id, clientViewerId="c5a", email="e@x")
    checkout = await client.post(
        f"/api/payments/{event_id}/create-session", headers=bearer(first.json()["viewerToken"])
    )
    body = checkout.json()
    await deliver(
        client,
        gateway_webhook("checkout.session.completed", body["paymentId"], body["createdAt"], payment_status="paid"),
    )

    second = await register(client, event_id, clientViewerId="c5b", email="E@X ")
    assert second.status_code == 201
    assert second.json()["resolvedClientViewerId"] == "c5a"
    assert second.json()["reused"] is True

    stream = await client.get(
        f"/api/playback/event/{event_id}/stream", headers=bearer(second.json()["viewerToken"])
    )
    assert stream.status_code == 200
    assert len(payments.payments) == 1


@pytest.mark.asyncio
async def test_async_deletion_of_live_event(client, events, secrets, provisioner, media):
    event_id = await create_event(client, accessMode="freeAccess")
    assert provisioner.dispatched == [event_id]
    await provision(client, event_id)

    held = Mock()
    held.return_value.run = AsyncMock(return_value=True)
    with patch("golive.routes.events.TeardownPipeline", new=held):
        accepted = await client.delete(f"/api/events/delete/{event_id}", headers=admin_headers())
        repeated = await client.delete(f"/api/events/delete/{event_id}", headers=admin_headers())

    assert accepted.status_code == 202
    assert events.events[event_id].is_deletion_in_progress is True
    assert repeated.status_code == 409

    # Teardown resumes through the wired pipeline
    assert await TeardownPipeline(events=events, secrets=secrets, media=media, sleep=no_sleep).run(event_id) is True
    assert event_id not in events.events
    assert "delete_live_channel" in media.names


@pytest.mark.asyncio
async def test_failed_teardown_is_recorded(client, events, media):
    event_id = await create_event(client, accessMode="freeAccess")
    await provision(client, event_id)
    media.fail_on = "delete_packager_endpoint"

    response = await client.delete(f"/api/events/delete/{event_id}", headers=admin_headers())

    assert response.status_code == 202
    event = events.events[event_id]
    assert event.is_deletion_in_progress is False
    assert event.deletion_error == "delete_packager_endpoint failed"


class QueuedTeardowns:
    """Stands in for the teardown Lambda queue."""

    def __init__(self):
        self.queued = []

    async def dispatch(self, event_id, deletion_started_at):
        self.queued.append({"action": "teardown", "eventId": event_id, "deletionStartedAt": deletion_started_at})
        return True


@pytest.mark.asyncio
async def test_dispatched_deletion_answers_before_teardown(client, events, secrets, provisioner, media, clock):
    event_id = await create_event(client, accessMode="freeAccess")
    await provision(client, event_id)
    queue = QueuedTeardowns()

    with patch("golive.routes.events.TeardownDispatcher", return_value=queue):
        accepted = await client.delete(f"/api/events/delete/{event_id}", headers=admin_headers())

    assert accepted.status_code == 202
    assert media.calls == []
    assert events.events[event_id].is_deletion_in_progress is True
    invocation, = queue.queued
    assert invocation["deletionStartedAt"] == accepted.json()["deletionStartedAt"]

    with patch(
        "golive.lambda_handler.EventService",
        new=lambda: EventService(repository=events, secrets=secrets, provisioner=provisioner, clock=clock),
    ), patch(
        "golive.lambda_handler.TeardownPipeline",
        new=lambda: TeardownPipeline(events=events, secrets=secrets, media=media, clock=clock, sleep=no_sleep),
    ):
        with pytest.raises(ConflictError):
            await resume_teardown(event_id)
        result = await resume_teardown(event_id, invocation["deletionStartedAt"])

    assert result == {"success": True, "eventId": event_id}
    assert event_id not in events.events
    assert "delete_live_channel" in media.names
