"""
HTTP surface tests: GET /proxy/{size}/{path} and GET /health
"""

import asyncio

import httpx
import pytest

from conftest import image_size, make_image


class TestProxyEndpoint:

    @pytest.mark.asyncio
    async def test_literal_scenario(self, origin, app_client, settings):
        origin.assets["avatar.png"] = make_image(400, 400)

        response = await app_client.get("/proxy/200x100/avatar.png")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert image_size(response.content) == ("PNG", (200, 100))
        assert (settings.data_dir / "200x100" / "avatar.png").read_bytes() == response.content
        assert origin.requests == {"/avatar.png": 1}

    @pytest.mark.asyncio
    async def test_nested_path_forwarded(self, origin, app_client, settings):
        origin.assets["users/1/avatar.jpg"] = make_image(80, 80, fmt="JPEG")

        response = await app_client.get("/proxy/40x20/users/1/avatar.jpg")

        assert response.status_code == 200
        assert image_size(response.content) == ("PNG", (40, 20))
        assert (settings.data_dir / "users" / "1" / "avatar.jpg").exists()
        assert (settings.data_dir / "40x20" / "users" / "1" / "avatar.jpg").exists()

    @pytest.mark.asyncio
    async def test_repeat_request_served_from_disk(self, origin, app_client):
        origin.assets["avatar.png"] = make_image(100, 100)

        first = await app_client.get("/proxy/10x10/avatar.png")
        second = await app_client.get("/proxy/10x10/avatar.png")

        assert first.content == second.content
        assert origin.total_requests == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", ["abcx100", "100", "100x", "0x10"])
    async def test_malformed_size_rejected(self, origin, app_client, settings, size):
        origin.assets["avatar.png"] = make_image(100, 100)

        response = await app_client.get(f"/proxy/{size}/avatar.png")

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert origin.total_requests == 0
        assert list(settings.data_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_traversal_rejected(self, origin, app_client):
        response = await app_client.get("/proxy/10x10/a/%2E%2E/%2E%2E/etc/passwd")

        # 404 if the client collapsed the dot segments before sending
        assert response.status_code in (400, 404)
        assert origin.total_requests == 0

    @pytest.mark.asyncio
    async def test_size_like_first_segment_rejected(self, origin, app_client):
        response = await app_client.get("/proxy/10x10/100x100/avatar.png")

        assert response.status_code == 400
        assert origin.total_requests == 0

    @pytest.mark.asyncio
    async def test_origin_failure_is_500(self, origin, app_client):
        origin.fail = httpx.ConnectError("connection refused")

        response = await app_client.get("/proxy/10x10/avatar.png")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("Something went wrong: failed to fetch")
        assert "connection refused" in response.text

    @pytest.mark.asyncio
    async def test_undecodable_origin_is_500(self, origin, app_client):
        origin.assets["page.png"] = b"<html>oops</html>"

        response = await app_client.get("/proxy/10x10/page.png")

        assert response.status_code == 500
        assert "image" in response.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("encoded,name", [("a%3Fb.png", "a?b.png"), ("a%23b.png", "a#b.png")])
    async def test_reserved_characters_in_path(self, origin, app_client, settings, encoded, name):
        origin.assets[name] = make_image(30, 30)

        response = await app_client.get(f"/proxy/10x10/{encoded}")

        assert response.status_code == 200
        assert image_size(response.content) == ("PNG", (10, 10))
        assert origin.requests == {f"/{name}": 1}
        assert (settings.data_dir / "10x10" / name).exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", ["3000000000x1", "1x3000000000"])
    async def test_oversized_dimensions_are_500(self, origin, app_client, size):
        origin.assets["a.png"] = make_image(20, 20)

        response = await app_client.get(f"/proxy/{size}/a.png")

        assert response.status_code == 500
        assert response.text.startswith(f"Something went wrong: failed to resize image to {size}")


class TestConcurrentColdStart:

    @pytest.mark.asyncio
    async def test_simultaneous_requests_all_succeed(self, origin, app_client, settings):
        origin.assets["users/1/avatar.jpg"] = make_image(256, 256, fmt="JPEG")
        origin.delay = 0.05

        responses = await asyncio.gather(
            app_client.get("/proxy/50x50/users/1/avatar.jpg"),
            app_client.get("/proxy/50x50/users/1/avatar.jpg"),
        )

        assert [r.status_code for r in responses] == [200, 200]
        assert responses[0].content == responses[1].content
        assert image_size(responses[0].content) == ("PNG", (50, 50))
        assert origin.total_requests == 1
        assert (settings.data_dir / "50x50" / "users" / "1" / "avatar.jpg").exists()


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_reports_stats(self, origin, app_client):
        origin.assets["a.png"] = make_image(20, 20)
        await app_client.get("/proxy/10x10/a.png")
        await app_client.get("/proxy/10x10/a.png")

        response = await app_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["stats"]["origin_fetches"] == 1
        assert body["stats"]["derived_hits"] == 1
        assert body["stats"]["inflight_derived"] == 0
