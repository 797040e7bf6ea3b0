import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, Role
from apps.lounges.models import Lounge, Food, Contract
from apps.orders.services import CartEntry, OrderPlacementService


def authenticated_client(user):
    """Return a fresh API client carrying a bearer token for ``user``."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def student(db):
    """Create and return a student who places orders."""
    return User.objects.create_user(
        email='student@example.com',
        password='TestPass123!',
        name='Demo Student',
        phone='+251900000003',
        role=Role.USER,
    )


@pytest.fixture
def other_student(db):
    """Create and return a second student."""
    return User.objects.create_user(
        email='other.student@example.com',
        password='TestPass123!',
        name='Other Student',
        role=Role.USER,
    )


@pytest.fixture
def lounge_owner(db):
    """Create and return the owner of the test lounge."""
    return User.objects.create_user(
        email='owner@example.com',
        password='TestPass123!',
        name='Lounge Owner',
        role=Role.LOUNGE,
    )


@pytest.fixture
def other_owner(db):
    """Create and return the owner of a different lounge."""
    return User.objects.create_user(
        email='other.owner@example.com',
        password='TestPass123!',
        name='Other Owner',
        role=Role.LOUNGE,
    )


@pytest.fixture
def admin_user(db):
    """Create and return a platform admin."""
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        name='System Admin',
        role=Role.ADMIN,
    )


@pytest.fixture
def student_client(student):
    return authenticated_client(student)


@pytest.fixture
def other_student_client(other_student):
    return authenticated_client(other_student)


@pytest.fixture
def owner_client(lounge_owner):
    return authenticated_client(lounge_owner)


@pytest.fixture
def other_owner_client(other_owner):
    return authenticated_client(other_owner)


@pytest.fixture
def admin_client(admin_user):
    return authenticated_client(admin_user)


@pytest.fixture
def lounge(db, lounge_owner):
    """Create an approved, active lounge."""
    return Lounge.objects.create(
        owner=lounge_owner,
        name='Sunrise Lounge',
        description='Signature dishes, quick bites and smoothies.',
        opening='07:00',
        closing='21:00',
        is_approved=True,
        is_active=True,
    )


@pytest.fixture
def other_lounge(db, other_owner):
    """Create a lounge owned by someone else."""
    return Lounge.objects.create(
        owner=other_owner,
        name='Library Cafe',
        is_approved=True,
        is_active=True,
    )


@pytest.fixture
def food_a(db, lounge):
    """Menu item A, 50.00."""
    return Food.objects.create(
        lounge=lounge,
        name='Shiro Wat',
        price=Decimal('50.00'),
        estimated_time=15,
    )


@pytest.fixture
def food_b(db, lounge):
    """Menu item B, 30.00."""
    return Food.objects.create(
        lounge=lounge,
        name='Mango Smoothie',
        price=Decimal('30.00'),
        estimated_time=5,
    )


@pytest.fixture
def unavailable_food(db, lounge):
    return Food.objects.create(
        lounge=lounge,
        name='Tibs',
        price=Decimal('120.00'),
        is_available=False,
    )


@pytest.fixture
def foreign_food(db, other_lounge):
    """Item sold by a different lounge."""
    return Food.objects.create(
        lounge=other_lounge,
        name='Espresso',
        price=Decimal('25.00'),
    )


@pytest.fixture
def contract(db, student, lounge):
    """Prepaid contract with 200.00 left."""
    return Contract.objects.create(
        user=student,
        lounge=lounge,
        total_amount=Decimal('500.00'),
        remaining_balance=Decimal('200.00'),
    )


@pytest.fixture
def low_contract(db, student, lounge):
    """Prepaid contract with 100.00 left."""
    return Contract.objects.create(
        user=student,
        lounge=lounge,
        total_amount=Decimal('100.00'),
        remaining_balance=Decimal('100.00'),
    )


@pytest.fixture
def cart(food_a, food_b):
    """A x2 and B x1: 130.00 in total."""
    return [
        CartEntry(food_id=food_a.id, quantity=2),
        CartEntry(food_id=food_b.id, quantity=1),
    ]


@pytest.fixture
def placed_order(db, student, lounge, contract, cart):
    """A PENDING order paid from the student's contract."""
    result = OrderPlacementService(commission_rate=Decimal('0.05')).place_order(
        user=student,
        lounge_id=lounge.id,
        entries=cart,
        payment_method='contract',
        contract_id=contract.id,
    )
    return result.unwrap()


@pytest.fixture
def gateway_order(db, student, lounge, cart):
    """A PENDING order awaiting gateway payment."""
    result = OrderPlacementService(commission_rate=Decimal('0.05')).place_order(
        user=student,
        lounge_id=lounge.id,
        entries=cart,
        payment_method='gateway',
    )
    return result.unwrap()
