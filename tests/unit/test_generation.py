"""Tests for workflow submission and asset reference resolution."""

import httpx
import pytest

from liblib.errors import RemoteRejection, TransportError, ValidationError
from liblib.generation import (
    COMFY_STATUS_PATH,
    COMFY_SUBMIT_PATH,
    FullUrl,
    JobSubmitter,
    RawKey,
    build_image_to_image_params,
    parse_asset_reference,
)
from liblib.schemas import GenerateStatus

STORAGE_BASE = "https://oss.test"


@pytest.fixture
def make_submitter(make_gateway, envelope):
    def _make(data=None, code=0):
        gateway, recorder = make_gateway(
            lambda r: httpx.Response(200, json=envelope(data, code=code, msg="rejected"))
        )
        return JobSubmitter(gateway, storage_base=STORAGE_BASE), recorder

    return _make


class TestParseAssetReference:
    def test_bare_key(self):
        assert parse_asset_reference("abc123.png") == RawKey("abc123.png")

    def test_full_url(self):
        ref = parse_asset_reference("https://cdn.test/x.png")
        assert ref == FullUrl("https://cdn.test/x.png")

    def test_upload_result_with_key(self):
        assert parse_asset_reference({"key": "img/a.png"}) == RawKey("img/a.png")

    def test_upload_result_with_own_base(self):
        ref = parse_asset_reference({"key": "img/a.png", "ossBaseUrl": "https://other.test/"})
        assert ref == FullUrl("https://other.test/img/a.png")

    @pytest.mark.parametrize("value", [None, 42, "", "   ", {"url": "x"}, {"key": ""}, ["a.png"]])
    def test_malformed_reference_rejected(self, value):
        with pytest.raises(ValidationError):
            parse_asset_reference(value)

    def test_resolution(self):
        assert RawKey("abc123.png").resolve(STORAGE_BASE + "/") == f"{STORAGE_BASE}/abc123.png"
        assert FullUrl("https://cdn.test/x.png").resolve(STORAGE_BASE) == "https://cdn.test/x.png"


class TestSubmit:
    async def test_bare_key_becomes_fully_qualified_url(self, make_submitter):
        submitter, recorder = make_submitter({"generateUuid": "gen-1"})
        params = build_image_to_image_params(
            "wf-1", width=512, height=768, image="abc123.png", prompt="a cat"
        )

        generate_uuid = await submitter.submit("tpl-1", params)

        assert generate_uuid == "gen-1"
        body = recorder.json_bodies()[0]
        assert body["templateUuid"] == "tpl-1"
        assert body["generateParams"]["190"]["inputs"]["image"] == f"{STORAGE_BASE}/abc123.png"
        assert body["generateParams"]["workflowUuid"] == "wf-1"
        assert recorder.requests[0].url.path == COMFY_SUBMIT_PATH

    async def test_caller_params_are_not_mutated(self, make_submitter):
        submitter, _ = make_submitter({"generateUuid": "gen-1"})
        params = {"workflowUuid": "wf", "190": {"inputs": {"image": "abc.png"}}}

        await submitter.submit("tpl", params)

        assert params["190"]["inputs"]["image"] == "abc.png"

    async def test_full_url_left_untouched(self, make_submitter):
        submitter, recorder = make_submitter({"generateUuid": "gen-1"})
        params = {"workflowUuid": "wf", "12": {"inputs": {"image": "https://cdn.test/x.png"}}}

        await submitter.submit("tpl", params)

        assert recorder.json_bodies()[0]["generateParams"]["12"]["inputs"]["image"] == "https://cdn.test/x.png"

    async def test_malformed_reference_fails_before_network(self, make_submitter):
        submitter, recorder = make_submitter({"generateUuid": "gen-1"})

        with pytest.raises(ValidationError):
            await submitter.submit("tpl", {"190": {"inputs": {"image": 7}}})

        assert recorder.requests == []

    async def test_nonzero_code_is_remote_rejection(self, make_submitter):
        submitter, _ = make_submitter(None, code=1)

        with pytest.raises(RemoteRejection):
            await submitter.submit("tpl", {"workflowUuid": "wf"})

    async def test_missing_generate_uuid_is_remote_rejection(self, make_submitter):
        submitter, _ = make_submitter({})

        with pytest.raises(RemoteRejection):
            await submitter.submit("tpl", {"workflowUuid": "wf"})

    async def test_template_uuid_required(self, make_submitter):
        submitter, _ = make_submitter({"generateUuid": "gen-1"})

        with pytest.raises(ValidationError):
            await submitter.submit("", {})


class TestGetStatus:
    async def test_parses_status_payload(self, make_submitter):
        submitter, recorder = make_submitter(
            {
                "generateUuid": "gen-1",
                "generateStatus": 5,
                "percentCompleted": 1,
                "images": [{"imageUrl": "https://cdn.test/out.png", "seed": 1, "auditStatus": 3}],
            }
        )

        status = await submitter.get_status("gen-1")

        assert status.generate_status is GenerateStatus.SUCCESS
        assert status.images[0].image_url == "https://cdn.test/out.png"
        assert recorder.requests[0].url.path == COMFY_STATUS_PATH
        assert recorder.json_bodies() == [{"generateUuid": "gen-1"}]

    async def test_unknown_status_value_is_transport_error(self, make_submitter):
        submitter, _ = make_submitter({"generateStatus": 99})

        with pytest.raises(TransportError):
            await submitter.get_status("gen-1")


class TestGenerateStatus:
    def test_terminal_classification(self):
        terminal = {s for s in GenerateStatus if s.is_terminal}
        assert terminal == {GenerateStatus.SUCCESS, GenerateStatus.FAILED, GenerateStatus.TIMEOUT}
