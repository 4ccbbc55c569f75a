import pytest
import soupsieve

from services.correlations.extractors import run_extractor
from services.correlations.model import ExtractorKind, SampleResult
from services.synthesis import css_builder
from services.synthesis.css_builder import build_css_extractor

HTML = "text/html;charset=UTF-8"


def _css(body, value, parameter="_csrf"):
    descriptor = build_css_extractor(body, value, parameter, "2 /login", HTML)
    if descriptor is None:
        return None
    assert descriptor.kind is ExtractorKind.CSS
    assert descriptor.match_number == 1
    return descriptor.expression, descriptor.attribute


def test_path_to_value_attribute(csrf_value):
    body = (
        "<html><body><form>"
        f'<input name="_csrf" type="hidden" value="{csrf_value}" />'
        "</form></body></html>"
    )
    assert _css(body, csrf_value) == ("html > body > form > input", "value")


def test_path_to_content_attribute(csrf_value):
    body = f'<html><head><meta name="_csrf" content="{csrf_value}" /></head></html>'
    assert _css(body, csrf_value) == ("html > head > meta", "content")


def test_id_with_dot_uses_attribute_selector(csrf_value):
    body = (
        "<html><body><form>"
        f'<input name="_csrf" id="csrf.token" value="{csrf_value}" />'
        "</form></body></html>"
    )
    assert _css(body, csrf_value) == ('[id="csrf.token"]', "value")


@pytest.mark.parametrize("element_id", ["csrfToken", "prodId"])
def test_id_selector(csrf_value, element_id):
    body = f'<html><body><form><input id="{element_id}" value="{csrf_value}" /></form></body></html>'
    assert _css(body, csrf_value) == (f"#{element_id}", "value")


def test_nth_child_when_siblings_are_ambiguous():
    body = (
        "<html><body><form>"
        '<input class="f" value="a" /><input class="f" value="b" /><span>x</span>'
        "</form></body></html>"
    )
    assert _css(body, "b") == ("html > body > form > input.f:nth-child(2)", "value")


def test_url_encoded_value_is_decoded():
    body = '<html><body><input id="q" value="a b" /></body></html>'
    assert _css(body, "a+b") == ("#q", "value")


def test_no_value_or_empty_response(csrf_value):
    assert _css("<html><head><title>Response</title></head></html>", csrf_value) is None
    assert _css("", csrf_value) is None


def test_css_round_trip(context):
    body = '<html><body><form><input name="prod" id="prodId" value="123"></form></body></html>'
    descriptor = build_css_extractor(body, "123", "prod", content_type="text/html")
    sample = SampleResult.from_text(body, content_type="text/html")
    assert run_extractor(descriptor, sample, {}, context) == {"prod": "123"}


@pytest.mark.parametrize("element_id", ["1token", "a b", "a/b", "x[1]"])
def test_id_that_is_not_an_identifier_is_escaped(context, element_id):
    body = f'<html><body><form><input id="{element_id}" value="42" /></form></body></html>'
    assert _css(body, "42") == ("#" + soupsieve.escape(element_id), "value")

    descriptor = build_css_extractor(body, "42", "_csrf")
    sample = SampleResult.from_text(body, content_type="text/html")
    assert run_extractor(descriptor, sample, {}, context) == {"_csrf": "42"}


def test_ancestor_id_and_classes_are_escaped(context):
    body = '<html><body><div id="9x"><p class="w-1/2"><input value="42" /></p></div></body></html>'
    expression, attribute = _css(body, "42")

    assert expression == "#" + soupsieve.escape("9x") + " > p." + soupsieve.escape("w-1/2") + " > input"
    sample = SampleResult.from_text(body, content_type="text/html")
    descriptor = build_css_extractor(body, "42", "_csrf")
    assert run_extractor(descriptor, sample, {}, context) == {"_csrf": "42"}


def test_unparseable_selector_yields_no_extractor(monkeypatch):
    monkeypatch.setattr(css_builder, "css_path", lambda element: "#1token[")
    body = '<html><body><input id="t" value="42" /></body></html>'
    assert build_css_extractor(body, "42", "_csrf") is None
