from unittest.mock import patch

import pytest
from benefitflow.api.dependencies import get_today
from benefitflow.core.config import settings
from benefitflow.infrastructure.address_validation_client import AddressCorrectionResult
from benefitflow.infrastructure.session_store import InMemorySessionBackend
from benefitflow.main import create_app
from fastapi.testclient import TestClient

from tests.factories import TODAY, StubAddressService

TERMS_FORM = {"acknowledgeTerms": "on", "acknowledgePrivacy": "on", "shareData": "yes"}


@pytest.fixture
def client():
    app = create_app(InMemorySessionBackend())
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app, follow_redirects=False)


def start(client, kind="apply", lang="en"):
    response = client.get(f"/{lang}/{kind}/start")
    assert response.status_code == 303
    return response.headers["location"]


def csrf_token(client, location):
    response = client.get(location)
    assert response.status_code == 200
    return response.json()["csrfToken"]


def post(client, location, data, token):
    return client.post(location, data={**data, "_csrf": token})


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_start_sets_session_cookie_and_redirects(client):
    location = start(client)

    assert location.startswith("/en/apply/")
    assert location.endswith("/terms-and-conditions")
    assert settings.session_cookie_name in client.cookies


def test_step_page_payload(client):
    location = start(client)

    response = client.get(location)

    body = response.json()
    assert body["page"] == "terms-and-conditions"
    assert body["flowKind"] == "apply"
    assert body["editMode"] is False
    assert body["csrfToken"]


def test_post_without_csrf_token_is_forbidden(client):
    location = start(client)

    response = client.post(location, data=TERMS_FORM)

    assert response.status_code == 403
    assert response.json()["error"] == "CSRF_TOKEN_INVALID"


def test_post_with_wrong_csrf_token_is_forbidden(client):
    location = start(client)

    response = post(client, location, TERMS_FORM, "forged")

    assert response.status_code == 403


def test_walk_into_variant(client):
    location = start(client)
    flow_id = location.split("/")[3]
    token = csrf_token(client, location)

    response = post(client, location, TERMS_FORM, token)
    assert response.status_code == 303
    assert response.headers["location"] == f"/en/apply/{flow_id}/type-application"

    response = post(client, f"/en/apply/{flow_id}/type-application", {"typeOfApplication": "adult"}, token)
    assert response.headers["location"] == f"/en/apply-adult/{flow_id}/tax-filing"

    response = post(client, f"/en/apply-adult/{flow_id}/tax-filing", {"hasFiledTaxes": "yes"}, token)
    assert response.headers["location"] == f"/en/apply-adult/{flow_id}/date-of-birth"

    state = client.get(f"/en/apply-adult/{flow_id}/date-of-birth").json()["state"]
    assert state["hasFiledTaxes"] is True
    assert state["typeOfApplication"] == "adult"


def test_validation_errors_are_422(client):
    location = start(client)
    token = csrf_token(client, location)

    response = post(client, location, {"acknowledgeTerms": "on"}, token)

    assert response.status_code == 422
    assert response.json() == {
        "error": "VALIDATION_ERROR",
        "errors": {"shareData": ["share-data-required"]},
    }


def test_variant_with_other_type_redirects_to_type_selection(client):
    location = start(client)
    flow_id = location.split("/")[3]
    token = csrf_token(client, location)
    post(client, f"/en/apply/{flow_id}/type-application", {"typeOfApplication": "adult"}, token)

    response = client.get(f"/en/apply-child/{flow_id}/tax-filing")

    assert response.status_code == 303
    assert response.headers["location"] == f"/en/apply/{flow_id}/type-application"


def test_invalid_flow_id_goes_to_fallback(client):
    response = client.get("/fr/apply-adult/not-a-uuid/tax-filing")

    assert response.status_code == 303
    assert response.headers["location"] == settings.cdcp_website_apply_url_fr


def test_unknown_flow_id_in_protected_flow_goes_to_dashboard(client):
    response = client.get("/en/protected-renew/11111111-1111-4111-8111-111111111111/type-renewal")

    assert response.headers["location"] == settings.protected_dashboard_url_en


@pytest.mark.parametrize(
    "path",
    [
        "/en/apply-pension/start",
        "/de/apply/start",
        "/en/apply-adult/start",
        "/en/apply/11111111-1111-4111-8111-111111111111/favourite-colour",
    ],
)
def test_unknown_pages_are_404(client, path):
    response = client.get(path)

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


def test_address_suggestion_is_a_page(client):
    location = start(client)
    flow_id = location.split("/")[3]
    token = csrf_token(client, location)
    post(client, f"/en/apply/{flow_id}/type-application", {"typeOfApplication": "adult"}, token)
    corrected = AddressCorrectionResult(
        status="corrected", address="123 Main Street", city="Ottawa", postal_code="K1A 0B2", province_code="ON"
    )

    with patch("benefitflow.api.dependencies.get_address_validation_service", return_value=StubAddressService(corrected)):
        response = post(
            client,
            f"/en/apply-adult/{flow_id}/mailing-address",
            {"address": "123 Main St", "city": "Ottawa", "country": "CAN", "province": "ON", "postalCode": "K1A 0B1"},
            token,
        )

    assert response.status_code == 200
    assert response.json()["status"] == "address-suggestion"
    assert response.json()["suggestedAddress"]["postalCode"] == "K1A 0B2"


def test_children_routes(client):
    location = start(client)
    flow_id = location.split("/")[3]
    token = csrf_token(client, location)
    post(client, f"/en/apply/{flow_id}/type-application", {"typeOfApplication": "adult-child"}, token)

    response = post(client, f"/en/apply-adult-child/{flow_id}/children", {"_action": "add"}, token)
    child_location = response.headers["location"]
    child_id = child_location.split("/")[-2]
    assert child_location == f"/en/apply-adult-child/{flow_id}/children/{child_id}/information"

    page = client.get(child_location).json()
    assert page["child"]["isNew"] is True
    assert page["child"]["childNumber"] == 1

    response = post(
        client,
        child_location,
        {
            "firstName": "Alex",
            "lastName": "Doe",
            "dateOfBirthYear": "2016",
            "dateOfBirthMonth": "7",
            "dateOfBirthDay": "4",
            "isParent": "yes",
            "hasSocialInsuranceNumber": "no",
        },
        token,
    )
    assert response.headers["location"] == f"/en/apply-adult-child/{flow_id}/children/{child_id}/dental-insurance"

    response = post(client, f"/en/apply-adult-child/{flow_id}/children/{child_id}/remove", {}, token)
    assert response.headers["location"] == f"/en/apply-adult-child/{flow_id}/children"
    assert client.get(f"/en/apply-adult-child/{flow_id}/children").json()["children"] == []


def test_confirmation_before_submission_redirects(client):
    location = start(client)
    flow_id = location.split("/")[3]

    response = client.get(f"/en/apply/{flow_id}/confirmation")

    assert response.headers["location"] == f"/en/apply/{flow_id}/terms-and-conditions"


def test_security_headers(client):
    response = client.get("/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Trace-Id" in response.headers


def test_legacy_resume_link(client):
    location = start(client, kind="renew")
    flow_id = location.split("/")[3]

    response = client.get(f"/en/renew/resume?id={flow_id}")
    assert response.headers["location"] == f"/en/renew/{flow_id}/terms-and-conditions"

    response = client.get("/en/renew/resume")
    assert response.headers["location"] == settings.cdcp_website_apply_url_en
