import os

# keep test runs from writing app.log into the working tree
os.environ["LOG_FILE"] = ""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from claims_crm.db.database import database
from claims_crm.db.schema import init_schema
from claims_crm.main import create_app
from claims_crm.models.claims import ClaimCreate
from claims_crm.models.directory import PolicyCreate, PolicyHolderCreate, SurveyorCreate, VehicleCreate
from claims_crm.models.renewals import RenewalCreate
from claims_crm.models.users import UserCreate
from claims_crm.services.claims import create_claim
from claims_crm.services.policies import create_policy, create_policy_holder, create_vehicle
from claims_crm.services.renewals import create_renewal
from claims_crm.services.surveyors import create_surveyor
from claims_crm.services.users import create_user


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database file per test"""
    database.configure(f"sqlite:///{tmp_path / 'crm.db'}")
    init_schema()
    yield database
    database.close()


@pytest.fixture
def client(db):
    """TestClient over a freshly built app"""
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def holder(db):
    return create_policy_holder(PolicyHolderCreate(
        name="Rahul Sharma", email="rahul.sharma@example.com", phone="+91 98200 00001", address="Pune",
    ))


@pytest.fixture
def policy(db, holder):
    vehicle = create_vehicle(VehicleCreate(
        registration="MH12AB1234", make="Maruti", model="Swift", year=2021, policy_holder_id=holder["id"],
    ))
    return create_policy(PolicyCreate(
        policy_holder_id=holder["id"],
        vehicle_id=vehicle["id"],
        policy_type="comprehensive",
        start_date=date(2024, 6, 1),
        end_date=date(2025, 5, 31),
        premium_amount=12000,
        coverage_amount=500000,
    ))


@pytest.fixture
def claim(db, policy):
    return create_claim(ClaimCreate(
        policy_id=policy["id"],
        incident_date=date(2025, 1, 1),
        incident_location="Pune",
        estimated_amount=45000,
    ))


def _surveyor(name: str, email: str):
    return create_surveyor(SurveyorCreate(
        name=name,
        email=email,
        phone="+91 98200 11111",
        specialization="Motor",
        license_number=f"LIC-{name[:3].upper()}",
        years_experience=7,
        address="Mumbai",
    ))


@pytest.fixture
def surveyor(db):
    return _surveyor("Anil Kapoor", "anil@surveys.example.com")


@pytest.fixture
def other_surveyor(db):
    return _surveyor("Meera Iyer", "meera@surveys.example.com")


@pytest.fixture
def user(db):
    return create_user(UserCreate(full_name="Asha Rao", email="asha.rao@example.com", role="claims_manager"))


@pytest.fixture
def renewal(db, policy):
    return create_renewal(RenewalCreate(policy_id=policy["id"], renewal_date=date.today() + timedelta(days=10)))
