"""
Tests for the ark module: runtime target selection, the arklet client,
and the ArkService local/pod dispatch.

Pod tests use CommandMocker in place of kubectl; local tests use
httpx.MockTransport in place of a running container.
"""

import json
import os
import sys

import httpx
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from arkctl.config import ToolConfig
from arkctl.modules.api import (
    ArkletResponse,
    BizModel,
    InstallBizRequest,
    K8sTarget,
    LocalTarget,
    RunType,
    ServiceError,
    UninstallBizRequest,
)
from arkctl.modules.ark import ArkletClient, ArkService, check_response, select_runtime_target
from conftest import CommandResponse
from fixtures.arklet_responses import (
    INSTALL_FAILED,
    INSTALL_SUCCESS,
    UNINSTALL_NOT_FOUND,
    UNINSTALL_SUCCESS,
    as_lines,
)


@pytest.fixture
def local_biz():
    return BizModel(biz_name="app", biz_version="1.0", biz_url="file:///work/target/app-1.0-ark-biz.jar")


class RecordingArklet:
    """httpx handler that answers like an arklet and records requests."""

    def __init__(self, responses):
        self.responses = responses
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.lstrip("/")
        return httpx.Response(200, json=self.responses[endpoint])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


# =============================================================================
# Runtime Target Selection
# =============================================================================


class TestSelectRuntimeTarget:
    def test_pod_coordinate_selects_k8s(self):
        target = select_runtime_target(1238, "ns/name")
        assert isinstance(target, K8sTarget)
        assert target.run_type == RunType.K8S
        assert target.coordinate == "ns/name"
        assert target.port == 1238

    @pytest.mark.parametrize("pod", ["", None])
    def test_empty_pod_selects_local(self, pod):
        target = select_runtime_target(1238, pod)
        assert isinstance(target, LocalTarget)
        assert target.run_type == RunType.LOCAL
        assert target.model_dump() == {"run_type": RunType.LOCAL, "port": 1238}

    def test_coordinate_is_not_validated_on_selection(self):
        target = select_runtime_target(1238, "not-a-coordinate")
        with pytest.raises(ServiceError, match="invalid pod coordinate"):
            target.split_coordinate()

    def test_coordinate_split(self):
        target = K8sTarget(coordinate="default/biz-host-0", port=1238)
        assert (target.namespace, target.name) == ("default", "biz-host-0")

    def test_targets_are_immutable(self):
        target = LocalTarget(port=1238)
        with pytest.raises(Exception):
            target.port = 8080


# =============================================================================
# Arklet responses
# =============================================================================


class TestCheckResponse:
    def test_success(self):
        check_response(ArkletResponse.from_payload(INSTALL_SUCCESS), "install biz")

    def test_failure_raises_with_reason(self):
        with pytest.raises(ServiceError, match="already installed"):
            check_response(ArkletResponse.from_payload(INSTALL_FAILED), "install biz")

    def test_not_found_tolerated_only_when_allowed(self):
        response = ArkletResponse.from_payload(UNINSTALL_NOT_FOUND)
        check_response(response, "uninstall biz", allow_missing=True)
        with pytest.raises(ServiceError, match="NOT_FOUND_BIZ"):
            check_response(response, "install biz")


class TestArkletClient:
    @pytest.mark.asyncio
    async def test_install_posts_biz_payload(self, local_biz):
        arklet = RecordingArklet({"installBiz": INSTALL_SUCCESS})
        client = ArkletClient("http://127.0.0.1:1238", transport=arklet.transport)

        response = await client.install_biz(local_biz)

        assert response.succeeded
        request = arklet.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://127.0.0.1:1238/installBiz"
        assert json.loads(request.content) == {
            "bizName": "app",
            "bizVersion": "1.0",
            "bizUrl": "file:///work/target/app-1.0-ark-biz.jar",
        }

    @pytest.mark.asyncio
    async def test_uninstall_omits_url(self, local_biz):
        arklet = RecordingArklet({"uninstallBiz": UNINSTALL_SUCCESS})
        client = ArkletClient("http://127.0.0.1:1238/", transport=arklet.transport)

        await client.uninstall_biz(local_biz)

        assert json.loads(arklet.requests[0].content) == {"bizName": "app", "bizVersion": "1.0"}

    @pytest.mark.asyncio
    async def test_connection_error_is_service_error(self, local_biz):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = ArkletClient("http://127.0.0.1:1238", transport=httpx.MockTransport(refuse))
        with pytest.raises(ServiceError, match="connection refused"):
            await client.install_biz(local_biz)

    @pytest.mark.asyncio
    async def test_http_status_error_is_service_error(self, local_biz):
        client = ArkletClient(
            "http://127.0.0.1:1238",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
        )
        with pytest.raises(ServiceError):
            await client.install_biz(local_biz)

    @pytest.mark.asyncio
    async def test_garbage_body_is_service_error(self, local_biz):
        client = ArkletClient(
            "http://127.0.0.1:1238",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
        )
        with pytest.raises(ServiceError, match="unexpected response"):
            await client.install_biz(local_biz)


# =============================================================================
# ArkService - local target
# =============================================================================


class TestArkServiceLocal:
    @pytest.mark.asyncio
    async def test_install_and_uninstall_against_port(self, ctx, local_biz):
        arklet = RecordingArklet({"installBiz": INSTALL_SUCCESS, "uninstallBiz": UNINSTALL_NOT_FOUND})
        service = ArkService(transport=arklet.transport)
        target = LocalTarget(port=8080)

        await service.uninstall_biz(ctx, UninstallBizRequest(biz_model=local_biz, target=target))
        await service.install_biz(ctx, InstallBizRequest(biz_model=local_biz, target=target))

        assert [str(r.url) for r in arklet.requests] == [
            "http://127.0.0.1:8080/uninstallBiz",
            "http://127.0.0.1:8080/installBiz",
        ]

    @pytest.mark.asyncio
    async def test_rejected_install(self, ctx, local_biz):
        arklet = RecordingArklet({"installBiz": INSTALL_FAILED})
        service = ArkService(transport=arklet.transport)

        with pytest.raises(ServiceError):
            await service.install_biz(
                ctx, InstallBizRequest(biz_model=local_biz, target=LocalTarget(port=1238))
            )


# =============================================================================
# ArkService - pod target
# =============================================================================


class TestArkServicePod:
    @pytest.fixture
    def service(self, command_mocker):
        tools = ToolConfig(kubectl="kubectl", pod_bundle_dir="/home/admin/bundles/")
        return ArkService(tools=tools, command_factory=command_mocker.factory)

    @pytest.fixture
    def target(self):
        return K8sTarget(coordinate="default/biz-host-0", port=1238)

    @pytest.mark.command_mock
    @pytest.mark.asyncio
    async def test_install_copies_local_bundle_then_execs_curl(self, ctx, service, target, local_biz, command_mocker):
        command_mocker.register("kubectl cp", CommandResponse())
        command_mocker.register("kubectl exec", CommandResponse(lines=as_lines(INSTALL_SUCCESS)))

        await service.install_biz(ctx, InstallBizRequest(biz_model=local_biz, target=target))

        cp, exec_ = command_mocker.calls
        assert cp.argv == [
            "kubectl", "cp",
            "/work/target/app-1.0-ark-biz.jar",
            "default/biz-host-0:/home/admin/bundles/app-1.0-ark-biz.jar",
        ]
        assert exec_.argv[:6] == ["kubectl", "exec", "-n", "default", "biz-host-0", "--"]
        assert "http://127.0.0.1:1238/installBiz" in exec_.argv
        payload = json.loads(exec_.argv[exec_.argv.index("-d") + 1])
        assert payload["bizUrl"] == "file:///home/admin/bundles/app-1.0-ark-biz.jar"

    @pytest.mark.command_mock
    @pytest.mark.asyncio
    async def test_remote_bundle_is_not_copied(self, ctx, service, target, command_mocker):
        command_mocker.register("kubectl exec", CommandResponse(lines=as_lines(INSTALL_SUCCESS)))
        biz = BizModel(biz_name="app", biz_version="1.0", biz_url="https://repo.example.com/app-1.0-ark-biz.jar")

        await service.install_biz(ctx, InstallBizRequest(biz_model=biz, target=target))

        assert not command_mocker.was_called_with("kubectl cp")
        payload = json.loads(command_mocker.calls[0].argv[-1])
        assert payload["bizUrl"] == "https://repo.example.com/app-1.0-ark-biz.jar"

    @pytest.mark.command_mock
    @pytest.mark.asyncio
    async def test_uninstall_tolerates_missing_biz(self, ctx, service, target, local_biz, command_mocker):
        command_mocker.register("uninstallBiz", CommandResponse(lines=as_lines(UNINSTALL_NOT_FOUND)))

        await service.uninstall_biz(ctx, UninstallBizRequest(biz_model=local_biz, target=target))

        assert command_mocker.call_count == 1

    @pytest.mark.command_mock
    @pytest.mark.asyncio
    async def test_kubectl_failure_is_service_error(self, ctx, service, target, local_biz, command_mocker):
        command_mocker.register("kubectl exec", CommandResponse(
            lines=['Error from server (NotFound): pods "biz-host-0" not found'],
            returncode=1,
        ))

        with pytest.raises(ServiceError, match="NotFound"):
            await service.uninstall_biz(ctx, UninstallBizRequest(biz_model=local_biz, target=target))

    @pytest.mark.command_mock
    @pytest.mark.asyncio
    async def test_missing_kubectl_is_service_error(self, ctx, service, target, local_biz, command_mocker):
        command_mocker.register("kubectl", CommandResponse(launch_error="failed to launch 'kubectl'"))

        with pytest.raises(ServiceError, match="kubectl unavailable"):
            await service.uninstall_biz(ctx, UninstallBizRequest(biz_model=local_biz, target=target))

    @pytest.mark.command_mock
    @pytest.mark.asyncio
    async def test_bad_coordinate_fails_before_kubectl(self, ctx, service, local_biz, command_mocker):
        target = K8sTarget(coordinate="biz-host-0", port=1238)

        with pytest.raises(ServiceError, match="invalid pod coordinate"):
            await service.install_biz(ctx, InstallBizRequest(biz_model=local_biz, target=target))
        assert command_mocker.call_count == 0
