"""Tests for the renderer."""

import pytest

from releasectl.exceptions import RenderError
from releasectl.manifest import Chart, ResourceKey, Template
from releasectl.renderer import Renderer, lint, render
from releasectl.values import resolve


def _chart(*templates: Template, defaults: dict | None = None) -> Chart:
    return Chart(
        name="test",
        version="1.0.0",
        templates=templates,
        defaults=defaults or {},
    )


def test_render_demo_chart(demo_chart: Chart) -> None:
    """Test rendering the demo chart with its default values."""
    manifests = render(demo_chart, demo_chart.defaults, release_name="my-demo-app")
    assert [m.key for m in manifests] == [
        ResourceKey("ConfigMap", "my-demo-app-content"),
        ResourceKey("Deployment", "my-demo-app"),
        ResourceKey("Service", "my-demo-app"),
    ]
    deployment = manifests[1]
    assert deployment.api_version == "apps/v1"
    assert deployment.doc["spec"]["replicas"] == 1
    container = deployment.doc["spec"]["template"]["spec"]["containers"][0]
    assert (
        container["image"] == "nginxinc/nginx-unprivileged:1.28.0-alpine3.21-perl"
    )
    assert deployment.labels == {
        "app.kubernetes.io/name": "demo-app",
        "app.kubernetes.io/instance": "my-demo-app",
        "app.kubernetes.io/version": "0.1.0",
    }
    assert manifests[0].doc["data"] == {
        "index.html": "<html><body>Hello from demo-app</body></html>"
    }
    assert manifests[2].doc["spec"]["ports"][0]["port"] == 80


def test_render_defaults_to_chart_name(demo_chart: Chart) -> None:
    """Test that the chart name is used when no release name is given."""
    manifests = render(demo_chart, demo_chart.defaults)
    assert manifests[1].key == ResourceKey("Deployment", "demo-app")


def test_render_is_deterministic(demo_chart: Chart) -> None:
    """Test that the same inputs always render the same manifests."""
    values = resolve(demo_chart.defaults, [{"replicaCount": 3}])
    renderer = Renderer()
    first = renderer.render(demo_chart, values, release_name="demo")
    second = renderer.render(demo_chart, values, release_name="demo")
    assert first == second
    assert [m.doc_yaml() for m in first] == [m.doc_yaml() for m in second]


def test_render_with_overrides(demo_chart: Chart) -> None:
    """Test rendering with values that disable the config map."""
    values = resolve(
        demo_chart.defaults,
        [{"replicaCount": 2, "configmap": {"enabled": False}}],
    )
    manifests = render(demo_chart, values, release_name="demo")
    assert [m.key for m in manifests] == [
        ResourceKey("Deployment", "demo"),
        ResourceKey("Service", "demo"),
    ]
    assert manifests[0].doc["spec"]["replicas"] == 2
    assert "volumes" not in manifests[0].doc["spec"]["template"]["spec"]


def test_render_missing_required_value(demo_chart: Chart) -> None:
    """Test that a missing required value fails rendering."""
    values = resolve(demo_chart.defaults, [{"replicaCount": None}])
    with pytest.raises(RenderError, match="replicaCount is required"):
        render(demo_chart, values)


def test_render_multiple_documents() -> None:
    """Test a template producing multiple documents, skipping empty ones."""
    chart = _chart(
        Template(
            "all.yaml",
            "---\n"
            "{% for name in Values.names %}\n"
            "---\n"
            "apiVersion: v1\n"
            "kind: ConfigMap\n"
            "metadata:\n"
            "  name: {{ name }}\n"
            "{% endfor %}\n",
        ),
        defaults={"names": ["a", "b"]},
    )
    manifests = render(chart, chart.defaults)
    assert [m.name for m in manifests] == ["a", "b"]


def test_render_duplicate_resource() -> None:
    """Test that two templates rendering the same resource is an error."""
    source = "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: same\n"
    chart = _chart(Template("a.yaml", source), Template("b.yaml", source))
    with pytest.raises(RenderError, match="Duplicate resource ConfigMap/same"):
        render(chart, {})


@pytest.mark.parametrize(
    ("source", "match"),
    [
        ("kind: ConfigMap\nmetadata:\n  name: a\n", "missing apiVersion"),
        ("apiVersion: v1\nkind: ConfigMap\nmetadata: {}\n", "missing metadata"),
        ("apiVersion: v1\nkind: ConfigMap\nmetadata:\n  labels: {}\n", "metadata.name"),
        ("- a\n- b\n", "expected a mapping"),
        ("a: [1\n", "Invalid YAML output"),
    ],
)
def test_render_invalid_output(source: str, match: str) -> None:
    """Test templates that do not render valid resources."""
    chart = _chart(Template("bad.yaml", source))
    with pytest.raises(RenderError, match=match) as err:
        render(chart, {})
    assert err.value.template_id == "bad.yaml"


def test_lint(demo_chart: Chart) -> None:
    """Test linting a valid chart."""
    assert lint(demo_chart) == []


def test_lint_problems() -> None:
    """Test linting charts with problems."""
    assert lint(_chart()) == ["Chart test-1.0.0 has no templates"]
    assert lint(_chart(Template("empty.yaml", "{% if false %}x{% endif %}"))) == [
        "Chart test-1.0.0 rendered no resources with default values"
    ]
    problems = lint(_chart(Template("a.yaml", "name: {{ Values.name }}")))
    assert len(problems) == 1
    assert "Error rendering template 'a.yaml'" in problems[0]
