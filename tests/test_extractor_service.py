import pytest

from services.extractor_service import run_extractor_on_response, synthesize_from_response


@pytest.mark.asyncio
async def test_synthesize_then_run(ctx):
    body = '<html><body><input id="prodId" value="123"></body></html>'
    created = await synthesize_from_response("prod", "123", body, "", "text/html", "1 GET /", ctx)
    assert created["status"] == "OK"
    assert created["extractor"]["kind"] == "css"
    assert created["extractor"]["expression"] == "#prodId"

    other = '<html><body><input id="prodId" value="456"></body></html>'
    result = await run_extractor_on_response(
        created["extractor"], other, "", "text/html", "", {"prod": "123"}, ctx
    )
    assert result["status"] == "OK"
    assert result["variables"] == {"prod": "456"}


@pytest.mark.asyncio
async def test_value_not_found(ctx):
    result = await synthesize_from_response("user", "bob", "<html/>", "", "text/html", "", ctx)
    assert result["status"] == "NOT_FOUND"
    assert result["extractor"] is None


@pytest.mark.asyncio
async def test_invalid_extractor_definition(ctx):
    result = await run_extractor_on_response({"ref_name": "x", "kind": "jsonpath"}, "", "", "", "", None, ctx)
    assert result["status"] == "ERROR"
    assert ctx.errors
