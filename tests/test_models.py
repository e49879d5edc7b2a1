import dataclasses

import pytest

from crawler_agent import AIAgentConfig, ActionResult, Plan, Position, Rect
from crawler_agent.errors import PlanParseError
from crawler_agent.models import ClickStep, ExtractStep, InputStep, LocatedElement, UnsupportedStep


class TestActionResult:
    def test_fail_always_has_error(self):
        result = ActionResult.fail("")
        assert result.success is False
        assert result.error

    def test_to_dict_omits_empty_fields(self):
        assert ActionResult.ok().to_dict() == {"success": True}
        assert ActionResult.fail("boom").to_dict() == {"success": False, "error": "boom"}


class TestGeometry:
    def test_center(self):
        rect = Rect(left=10, top=20, width=100, height=40)
        assert rect.center() == Position(x=60, y=40)
        assert rect.contains(rect.center())

    def test_from_dict_accepts_xy(self):
        assert Rect.from_dict({"x": 1, "y": 2, "width": 3, "height": 4}) == Rect(1, 2, 3, 4)

    def test_from_dict_incomplete(self):
        assert Rect.from_dict({"left": 1, "top": 2}) is None
        assert Rect.from_dict(None) is None

    def test_located_without_rect_has_no_position(self):
        located = LocatedElement.from_rect({"tagName": "div"}, None)
        assert located.position is None


class TestPlanParsing:
    def test_variants(self):
        plan = Plan.from_dict({"actions": [
            {"type": "click", "params": {"element": "login button"}},
            {"type": "input", "params": {"element": "email field", "text": "a@b.c"}, "optional": True},
            {"type": "extract", "params": {}},
        ]})
        click, typed, extract = plan.steps
        assert isinstance(click, ClickStep) and click.element == "login button"
        assert isinstance(typed, InputStep) and typed.text == "a@b.c" and typed.optional
        assert isinstance(extract, ExtractStep) and extract.selector == "body"

    def test_optional_inside_params(self):
        plan = Plan.from_dict({"actions": [{"type": "click", "params": {"element": "x", "optional": True}}]})
        assert plan.steps[0].optional is True

    def test_unknown_type_kept_when_lenient(self):
        plan = Plan.from_dict({"actions": [{"type": "hover", "params": {"element": "menu"}}]})
        step = plan.steps[0]
        assert isinstance(step, UnsupportedStep)
        assert step.type == "hover"

    def test_unknown_type_rejected_when_strict(self):
        with pytest.raises(PlanParseError, match="Unsupported action type: hover"):
            Plan.from_dict({"actions": [{"type": "hover"}]}, strict=True)

    def test_malformed(self):
        with pytest.raises(PlanParseError):
            Plan.from_dict({"actions": "click everything"})
        with pytest.raises(PlanParseError):
            Plan.from_dict({"actions": ["click"]})

    def test_to_dict(self):
        raw = {"actions": [
            {"type": "input", "params": {"element": "search box", "text": "weather"}},
            {"type": "extract", "params": {"selector": "h1"}, "optional": True},
        ]}
        assert Plan.from_dict(raw).to_dict() == raw


class TestConfig:
    def test_frozen(self):
        config = AIAgentConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.headless = True

    def test_defaults(self):
        config = AIAgentConfig()
        assert config.engine == "playwright"
        assert config.timeout == 30000
        assert config.confidence_threshold == 0.7
        assert config.max_retries == 3

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            AIAgentConfig(confidence_threshold=1.5)

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CRAWLER_ENGINE", "selenium")
        monkeypatch.setenv("CRAWLER_HEADLESS", "true")
        monkeypatch.setenv("CRAWLER_TIMEOUT", "5000")
        monkeypatch.setenv("CRAWLER_USE_PLANNING", "0")
        config = AIAgentConfig.from_env(max_retries=5)
        assert config.engine == "selenium"
        assert config.headless is True
        assert config.timeout == 5000
        assert config.use_autonomous_planning is False
        assert config.max_retries == 5
