from datetime import date

import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient

from billing.models import Bill
from core.constants import RoomStatus

pytestmark = pytest.mark.django_db


def create_bill(api_client, room, **extra):
    payload = {'room': room.id, 'month': 5, 'year': 2024, 'bill_date': '2024-06-01'}
    payload.update(extra)
    return api_client.post('/api/bills/', payload, format='json')


def test_create_bill_returns_envelope(api_client, room, metered_tenant):
    response = create_bill(api_client, room)

    assert response.status_code == 201
    body = response.json()
    assert body['success'] is True
    assert body['data']['total_amount'] == "3280.00"
    assert body['data']['status'] == "pending"
    assert len(body['data']['items']) == 5


def test_duplicate_bill_is_a_conflict(api_client, room, bill):
    response = create_bill(api_client, room)

    assert response.status_code == 409
    body = response.json()
    assert body['success'] is False
    assert body['code'] == "DUPLICATE_BILL"
    assert body['details']['existing_bill_id'] == bill.id


def test_precondition_failure_is_bad_request(api_client, room, tenant):
    response = create_bill(api_client, room)

    assert response.status_code == 400
    assert response.json()['code'] == "METER_READING_REQUIRED"


def test_invalid_input_uses_envelope(api_client, room):
    response = create_bill(api_client, room, month=13)

    assert response.status_code == 400
    body = response.json()
    assert body['success'] is False
    assert 'month' in body['details']


def test_unknown_bill_is_not_found(api_client):
    response = api_client.get('/api/bills/999999/')

    assert response.status_code == 404
    assert response.json() == {'success': False, 'error': "Not found.", 'code': "NOT_FOUND"}


def test_unknown_room_is_not_found(api_client, dormitory):
    response = api_client.post('/api/bills/', {'room': 999999, 'month': 5, 'year': 2024}, format='json')

    assert response.status_code == 404
    assert response.json()['code'] == "NOT_FOUND"


def test_non_staff_user_is_refused(room):
    user = get_user_model().objects.create_user(username="tenant", password="secret")
    client = APIClient()
    client.force_authenticate(user=user)

    response = client.get('/api/bills/')

    assert response.status_code == 403
    assert response.json()['success'] is False


def test_pay_bill(api_client, bill, staff_user):
    response = api_client.post(f'/api/bills/{bill.id}/pay/', {'amount': '1000', 'method': 'cash'}, format='json')

    assert response.status_code == 201
    assert response.json()['data']['recorded_by'] == staff_user.username
    bill.refresh_from_db()
    assert bill.status == "partially_paid"


def test_transfer_with_evidence_upload(api_client, bill, settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    evidence = SimpleUploadedFile("slip.jpg", b"\xff\xd8\xff evidence", content_type="image/jpeg")

    response = api_client.post(
        f'/api/bills/{bill.id}/pay/',
        {'amount': '3280', 'method': 'transfer', 'reference_code': "TX-1", 'evidence': evidence},
        format='multipart',
    )

    assert response.status_code == 201
    assert response.json()['data']['evidence_url'].endswith(".jpg")


def test_transfer_without_evidence_is_rejected(api_client, bill):
    response = api_client.post(
        f'/api/bills/{bill.id}/pay/',
        {'amount': '100', 'method': 'transfer', 'reference_code': "TX-1"},
        format='json',
    )

    assert response.status_code == 400
    assert response.json()['code'] == "MISSING_EVIDENCE"


def test_batch_endpoint(api_client, room, metered_tenant, empty_room):
    response = api_client.post(
        '/api/bills/batch/',
        {'rooms': [room.id, empty_room.id], 'month': 5, 'year': 2024},
        format='json',
    )

    assert response.status_code == 200
    data = response.json()['data']
    assert data['created_count'] == 1
    assert data['failed'][0]['code'] == "NO_ACTIVE_TENANT"


def test_revert_returns_draft_price(api_client, bill, room):
    response = api_client.post(f'/api/bills/{bill.id}/revert/')

    assert response.status_code == 200
    assert float(response.json()['data']['total']) == 3280.0
    assert not Bill.objects.exists()
    room.refresh_from_db()
    assert room.status == RoomStatus.READY_FOR_BILLING


def test_delete_paid_bill_is_a_conflict(api_client, bill, processor):
    processor.pay(bill, '3280', 'cash')

    response = api_client.delete(f'/api/bills/{bill.id}/')

    assert response.status_code == 409
    assert response.json()['code'] == "BILL_NOT_MODIFIABLE"


def test_receipt_is_pdf(api_client, bill):
    response = api_client.get(f'/api/bills/{bill.id}/receipt/')

    assert response.status_code == 200
    assert response['Content-Type'] == 'application/pdf'
    assert response.content.startswith(b'%PDF')


def test_summary_requires_dormitory(api_client, bill):
    assert api_client.get('/api/bills/summary/').status_code == 400

    response = api_client.get(f'/api/bills/summary/?dormitory={bill.dormitory_id}')

    assert response.status_code == 200
    assert response.json()['data']['pending_count'] == 1


def test_record_meter_reading(api_client, room, tenant):
    response = api_client.post(
        '/api/meter-readings/',
        {'room': room.id, 'utility_type': 'electric', 'current_reading': '42.5', 'reading_date': '2024-05-28'},
        format='json',
    )

    assert response.status_code == 201
    assert response.json()['data']['units_used'] == "42.50"
    room.refresh_from_db()
    assert room.status == RoomStatus.READY_FOR_BILLING


def test_decreasing_reading_rejected_over_api(api_client, room, metered_tenant):
    response = api_client.post(
        '/api/meter-readings/',
        {'room': room.id, 'utility_type': 'electric', 'current_reading': '10', 'reading_date': '2024-06-28'},
        format='json',
    )

    assert response.status_code == 400
    assert response.json()['code'] == "DECREASING_READING"


def test_assign_and_move_out_tenant(api_client, empty_room):
    response = api_client.post(
        '/api/tenants/', {'room': empty_room.id, 'name': "Kanya", 'number_of_residents': 2}, format='json'
    )
    assert response.status_code == 201
    tenant_id = response.json()['data']['id']

    response = api_client.post(f'/api/tenants/{tenant_id}/move-out/', {'move_out_date': str(date(2024, 6, 30))},
                               format='json')

    assert response.status_code == 200
    empty_room.refresh_from_db()
    assert empty_room.status == RoomStatus.AVAILABLE


def test_move_out_with_balance_is_a_conflict(api_client, bill, metered_tenant):
    response = api_client.post(f'/api/tenants/{metered_tenant.id}/move-out/', {}, format='json')

    assert response.status_code == 409
    assert response.json()['code'] == "OUTSTANDING_BALANCE"


def test_room_price_preview(api_client, room, metered_tenant):
    response = api_client.get(f'/api/rooms/{room.id}/price/')

    assert response.status_code == 200
    data = response.json()['data']
    assert float(data['total']) == 3280.0
    assert float(data['breakdown']['floor_rate']) == -200.0


def test_batch_endpoint_reports_unknown_room(api_client, room, metered_tenant):
    response = api_client.post(
        '/api/bills/batch/', {'rooms': [room.id, 999999], 'month': 5, 'year': 2024}, format='json'
    )

    assert response.status_code == 200
    data = response.json()['data']
    assert data['created_count'] == 1
    assert data['failed'] == [{
        'room_id': 999999, 'room_number': '', 'error': "Room [999999] not found",
        'code': "NOT_FOUND", 'details': {},
    }]
