from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from contextkeeper.config import Settings
from contextkeeper.database.gateway import StorageGateway
from contextkeeper.main import create_app
from contextkeeper.modules.auth.service import IdentityVerifier
from tests.fakes import FakeSupabase

ALICE = "11111111-1111-1111-1111-111111111111"
BOB = "22222222-2222-2222-2222-222222222222"
ALICE_TOKEN = "eyJhbGciOiJIUzI1NiJ9.alice.signature"
BOB_TOKEN = "eyJhbGciOiJIUzI1NiJ9.bob.signature"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def fake_supabase() -> FakeSupabase:
    return FakeSupabase(tokens={ALICE_TOKEN: ALICE, BOB_TOKEN: BOB})


@pytest.fixture()
def write_mode() -> str:
    return "rpc"


@pytest.fixture()
def gateway(fake_supabase: FakeSupabase, write_mode: str) -> StorageGateway:
    return StorageGateway(fake_supabase, atomic_write_mode=write_mode)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        supabase_url="http://supabase.test",
        supabase_service_role_key="service-role-key",
        environment="test",
        rate_limit="1000/minute",
        allowed_origins="http://localhost:3000",
    )


@pytest.fixture()
def client(settings: Settings, gateway: StorageGateway, fake_supabase: FakeSupabase) -> TestClient:
    app = create_app(settings, gateway=gateway, identity_verifier=IdentityVerifier(fake_supabase))
    return TestClient(app)


@pytest.fixture()
def alice(client: TestClient) -> TestClient:
    client.headers.update(bearer(ALICE_TOKEN))
    return client
