"""Agent 注册 API 测试：注册、幂等、非法端口、注销、注册表查询。"""
import pytest
from httpx import AsyncClient


class TestAgentRegister:
    async def test_register_uses_peer_address(self, client: AsyncClient, registry):
        resp = await client.post("/api/v1/agent/register", json={"port": "9100"})
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

        listed = await registry.list_registered()
        assert [(r.address, r.port) for r in listed] == [("10.0.0.5", 9100)]

    async def test_payload_address_is_ignored(self, client: AsyncClient, registry):
        resp = await client.post("/api/v1/agent/register", json={"port": "9100", "address": "192.168.1.1"})
        assert resp.status_code == 200
        listed = await registry.list_registered()
        assert listed[0].address == "10.0.0.5"

    async def test_register_integer_port(self, client: AsyncClient, registry):
        resp = await client.post("/api/v1/agent/register", json={"port": 9100})
        assert resp.status_code == 200
        assert (await registry.list_registered())[0].port == 9100

    async def test_register_twice_no_duplicate(self, client: AsyncClient):
        for _ in range(2):
            resp = await client.post("/api/v1/agent/register", json={"port": "9100"})
            assert resp.json()["status"] == "ok"

        resp = await client.get("/api/v1/agents")
        data = resp.json()
        assert data["total"] == 1
        assert data["agents"][0]["address"] == "10.0.0.5"
        assert data["agents"][0]["port"] == 9100

    async def test_register_invalid_port_rejected(self, client: AsyncClient, registry):
        await client.post("/api/v1/agent/register", json={"port": "9100"})

        resp = await client.post("/api/v1/agent/register", json={"port": "not-a-port"})
        assert resp.status_code == 422
        data = resp.json()
        assert data["status"] == "rejected"
        assert data["error"] == "invalid_registration"

        listed = await registry.list_registered()
        assert [(r.address, r.port) for r in listed] == [("10.0.0.5", 9100)]

    async def test_register_out_of_range_port(self, client: AsyncClient, registry):
        resp = await client.post("/api/v1/agent/register", json={"port": "70000"})
        assert resp.status_code == 422
        assert resp.json()["status"] == "rejected"
        assert await registry.list_registered() == []

    @pytest.mark.parametrize("payload", [
        {}, {"port": None}, {"port": [9100]}, {"port": {"value": 9100}},
    ])
    async def test_register_missing_or_malformed_port(self, client: AsyncClient, registry, payload):
        resp = await client.post("/api/v1/agent/register", json=payload)
        assert resp.status_code == 422
        data = resp.json()
        assert data["status"] == "rejected"
        assert data["error"] == "invalid_registration"
        assert await registry.list_registered() == []

    @pytest.mark.parametrize("port", [True, False, 9100.0, 9100.5, "9100.0"])
    async def test_register_non_integer_port_not_coerced(self, client: AsyncClient, registry, port):
        resp = await client.post("/api/v1/agent/register", json={"port": port})
        assert resp.status_code == 422
        assert resp.json()["status"] == "rejected"
        assert await registry.list_registered() == []

    @pytest.mark.parametrize("body", ["[9100]", "not json", '"9100"'])
    async def test_register_non_object_body(self, client: AsyncClient, registry, body):
        resp = await client.post(
            "/api/v1/agent/register", content=body, headers={"content-type": "application/json"},
        )
        assert resp.status_code == 422
        data = resp.json()
        assert data["status"] == "rejected"
        assert data["error"] == "invalid_registration"
        assert await registry.list_registered() == []

    async def test_agents_from_different_peers(self, client_factory, registry):
        for peer in ("10.0.0.5", "10.0.0.6"):
            resp = await client_factory(peer).post("/api/v1/agent/register", json={"port": "9100"})
            assert resp.status_code == 200
        listed = await registry.list_registered()
        assert [r.address for r in listed] == ["10.0.0.5", "10.0.0.6"]


class TestAgentDeregister:
    async def test_deregister(self, client: AsyncClient, registry):
        await client.post("/api/v1/agent/register", json={"port": "9100"})
        resp = await client.post("/api/v1/agent/deregister", json={"port": "9100"})
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
        assert await registry.list_registered() == []

    async def test_deregister_unknown(self, client: AsyncClient):
        resp = await client.post("/api/v1/agent/deregister", json={"port": "9100"})
        assert resp.json() == {"status": "not_registered"}

    async def test_deregister_malformed_port(self, client: AsyncClient, registry):
        await client.post("/api/v1/agent/register", json={"port": "9100"})
        resp = await client.post("/api/v1/agent/deregister", json={"port": True})
        assert resp.status_code == 422
        assert resp.json()["status"] == "rejected"
        assert len(await registry.list_registered()) == 1

    async def test_deregister_only_own_address(self, client_factory, registry):
        await client_factory("10.0.0.5").post("/api/v1/agent/register", json={"port": "9100"})
        resp = await client_factory("10.0.0.6").post("/api/v1/agent/deregister", json={"port": "9100"})
        assert resp.json() == {"status": "not_registered"}
        assert len(await registry.list_registered()) == 1


class TestAgentList:
    async def test_list_empty(self, client: AsyncClient):
        resp = await client.get("/api/v1/agents")
        assert resp.status_code == 200
        assert resp.json() == {"agents": [], "total": 0, "ttl_seconds": 300}

    async def test_list_excludes_expired(self, client: AsyncClient, clock):
        await client.post("/api/v1/agent/register", json={"port": "9100"})
        clock.advance(301)
        resp = await client.get("/api/v1/agents")
        assert resp.json()["total"] == 0


class TestHealth:
    async def test_health(self, client: AsyncClient):
        await client.post("/api/v1/agent/register", json={"port": "9100"})
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["agents"] == 1
