import os

from hulybuild.MANAGERS.service_discovery import ServiceDiscovery, discover_context, scan_recipe_dirs
from hulybuild.MODELS.service_spec import SERVICE_REGISTRY, service_registry


def test_preset_wins():
    spec = SERVICE_REGISTRY["front"]
    assert discover_context(spec, ["dev/frontend"], preset_available=True) == "apps/front"


def test_segment_match_before_substring():
    spec = SERVICE_REGISTRY["fulltext"]
    dirs = ["pods/fulltext-pod", "services/fulltext"]
    assert discover_context(spec, dirs) == "services/fulltext"


def test_aliases_are_tried_in_order():
    spec = SERVICE_REGISTRY["front"]
    assert discover_context(spec, ["desktop/app", "frontend/web"]) == "frontend/web"

    spec = SERVICE_REGISTRY["aibot"]
    assert discover_context(spec, ["services/AI-Bot"]) == "services/AI-Bot"


def test_substring_fallback():
    spec = SERVICE_REGISTRY["stats"]
    assert discover_context(spec, ["pods/statsd"]) == "pods/statsd"


def test_no_match():
    spec = SERVICE_REGISTRY["rekoni"]
    assert discover_context(spec, [".", "apps/front"]) is None


def test_scan_recipe_dirs_skips_dependencies(platform_dir, write_file):
    write_file(platform_dir / "Dockerfile")
    write_file(platform_dir / "apps" / "front" / "Dockerfile")
    write_file(platform_dir / "node_modules" / "rekoni" / "Dockerfile")
    write_file(platform_dir / ".git" / "stats" / "Dockerfile")
    write_file(platform_dir / "common" / "temp" / "love" / "Dockerfile")

    assert scan_recipe_dirs(str(platform_dir)) == [".", "apps/front"]


def test_find(platform_dir, write_file):
    write_file(platform_dir / "apps" / "account" / "Dockerfile")
    write_file(platform_dir / "pods" / "transactor" / "Dockerfile")
    discovery = ServiceDiscovery(str(platform_dir))

    assert discovery.find(SERVICE_REGISTRY["account"]) == os.path.join(str(platform_dir), "apps", "account")
    assert discovery.find(SERVICE_REGISTRY["transactor"]) == os.path.join(str(platform_dir), "pods", "transactor")
    assert discovery.find(SERVICE_REGISTRY["love"]) is None


def test_service_paths_override_presets():
    registry = service_registry({"front": "dev/prod"})
    assert registry["front"].preset_path == "dev/prod"
    assert registry["account"].preset_path == "apps/account"
    assert list(registry) == list(SERVICE_REGISTRY)


def test_find_prefers_configured_preset(platform_dir, write_file):
    write_file(platform_dir / "apps" / "front" / "Dockerfile")
    write_file(platform_dir / "dev" / "prod" / "Dockerfile")
    spec = service_registry({"front": "dev/prod"})["front"]

    assert ServiceDiscovery(str(platform_dir)).find(spec) == os.path.join(str(platform_dir), "dev", "prod")
