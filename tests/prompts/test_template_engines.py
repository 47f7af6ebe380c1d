from __future__ import annotations

import pytest
from jinja2 import TemplateError

from promptloop.errors import TemplateRenderError
from promptloop.prompts import (
    ExpressionTemplateEngine,
    PromptRenderer,
    render_normal,
    render_template,
)
from promptloop.types import Message, Prompt, PromptTemplate, Role, TemplateType


def test_normal_engine_supports_both_placeholder_styles():
    out = render_normal(
        "Hello ${name}, your code is {{code}}",
        {"name": "David", "code": "ABC123"},
    )
    assert out == "Hello David, your code is ABC123"


def test_normal_engine_leaves_missing_variables_verbatim():
    assert render_normal("Hello ${name}", {}) == "Hello ${name}"
    assert render_normal("Hi {{who}}!", {"other": "x"}) == "Hi {{who}}!"


def test_normal_engine_stringifies_values():
    out = render_normal(
        "${n} ${ok} ${none} ${items} ${obj}",
        {"n": 3, "ok": True, "none": None, "items": [1, 2], "obj": {"a": "b"}},
    )
    assert out == '3 true  [1, 2] {"a": "b"}'


def test_normal_engine_defaults_and_escapes():
    assert render_normal("Hi ${name:-there}", {}) == "Hi there"
    assert render_normal("Hi ${name:-there}", {"name": "Ann"}) == "Hi Ann"
    assert render_normal("literal $${name}", {"name": "Ann"}) == "literal ${name}"


def test_normal_engine_does_not_rescan_substituted_values():
    out = render_normal("${a}", {"a": "${b}", "b": "nope"})
    assert out == "${b}"


def test_normal_engine_passes_through_empty_template():
    assert render_normal("", {"a": 1}) == ""
    assert render_normal(None, {"a": 1}) is None


def test_expression_engine_supports_loops_conditionals_and_filters():
    engine = ExpressionTemplateEngine()
    template = (
        "{% if vip %}Dear {{ user.name | upper }}{% else %}Hi{% endif %}: "
        "{% for item in items %}{{ item }}{% if not loop.last %}, {% endif %}{% endfor %}"
    )
    out = engine.render(template, {"vip": True, "user": {"name": "ann"}, "items": ["a", "b"]})
    assert out == "Dear ANN: a, b"


def test_expression_engine_renders_unknown_names_as_empty():
    engine = ExpressionTemplateEngine()
    assert engine.render("[{{ missing }}][{{ missing.attr }}]", {}) == "[][]"


def test_expression_engine_reports_syntax_errors():
    engine = ExpressionTemplateEngine()
    with pytest.raises(TemplateRenderError):
        engine.render("{% if %}", {})


def test_expression_engine_reports_runtime_errors():
    engine = ExpressionTemplateEngine()
    with pytest.raises(TemplateRenderError):
        engine.render("{{ 1 / n }}", {"n": 0})


def test_render_template_dispatches_by_type():
    variables = {"name": "Ann"}
    assert render_template(None, "Hi ${name}", variables) == "Hi Ann"
    assert render_template(TemplateType.NORMAL, "Hi {{name}}", variables) == "Hi Ann"
    assert render_template("jinja2", "Hi {{ name }}", variables) == "Hi Ann"


def test_render_template_rejects_unknown_type():
    with pytest.raises(TemplateRenderError):
        render_template("mustache", "Hi", {})


class _Unprintable:
    def __str__(self) -> str:
        raise RuntimeError("no text form")


def test_normal_engine_wraps_stringification_failures():
    with pytest.raises(TemplateRenderError) as exc_info:
        render_normal("value: ${v}", {"v": _Unprintable()})
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.parametrize(
    ("template", "variables", "cause"),
    [
        ('{{ m.pop("x") }}', {"m": {}}, KeyError),
        ("{{ items.pop() }}", {"items": []}, IndexError),
        ("{{ items[5] + 1 }}", {"items": [1]}, TemplateError),
    ],
)
def test_expression_engine_wraps_any_runtime_error(template, variables, cause):
    engine = ExpressionTemplateEngine()

    with pytest.raises(TemplateRenderError) as exc_info:
        engine.render(template, variables)
    assert isinstance(exc_info.value.__cause__, cause)


def test_renderer_surfaces_expression_failures_as_render_errors():
    prompt = Prompt(
        prompt_key="broken",
        prompt_template=PromptTemplate(
            template_type=TemplateType.JINJA2,
            messages=[Message(role=Role.USER, content="{{ items.pop() }}")],
        ),
    )

    with pytest.raises(TemplateRenderError):
        PromptRenderer().render(prompt, {"items": []})


@pytest.mark.parametrize(
    "template",
    [
        "{{ ''.__class__.__mro__[1].__subclasses__() | length }}",
        "{{ ''.__class__.__mro__[1].__subclasses__() }}",
        "{{ obj.__init__.__globals__.keys() }}",
    ],
)
def test_expression_engine_blocks_python_internals(template):
    engine = ExpressionTemplateEngine()

    with pytest.raises(TemplateRenderError):
        engine.render(template, {"obj": _Unprintable()})


def test_expression_engine_hides_dunder_attributes():
    engine = ExpressionTemplateEngine()

    assert engine.render("[{{ name.__class__ }}]", {"name": "ann"}) == "[]"
