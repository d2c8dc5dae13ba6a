import os
from datetime import datetime, timezone

import pytest

from hulybuild.exceptions import ConfigurationError
from hulybuild.MODELS.build_config import BuildConfig
from hulybuild.UTILS.tags import new_tag_suffix


def test_requires_exactly_one_source(tmp_path):
    with pytest.raises(ConfigurationError, match="Either --repo or --path"):
        BuildConfig.create(root_dir=str(tmp_path))
    with pytest.raises(ConfigurationError, match="mutually exclusive"):
        BuildConfig.create(root_dir=str(tmp_path), repo="https://example.com/platform.git",
                           path=str(tmp_path))


def test_derived_paths(tmp_path):
    config = BuildConfig.create(root_dir=str(tmp_path), path="/src/platform", tag_suffix="abc")
    assert config.checkout_dir == os.path.join(str(tmp_path), ".build", "platform")
    assert config.contexts_dir == os.path.join(str(tmp_path), ".build", "contexts")
    assert config.images_file == os.path.join(str(tmp_path), ".images.conf")
    assert config.state_file == os.path.join(str(tmp_path), ".build-source.json")


def test_image_tag(tmp_path):
    config = BuildConfig.create(root_dir=str(tmp_path), path="/src", tag_suffix="abc")
    assert config.image_tag("front") == "huly/front:local-abc"

    config = BuildConfig.create(root_dir=str(tmp_path), path="/src", tag_suffix="abc",
                                registry_prefix="registry.example.com/team/")
    assert config.image_tag("front") == "registry.example.com/team/huly/front:local-abc"


def test_tag_suffix_defaults(tmp_path):
    first = BuildConfig.create(root_dir=str(tmp_path), path="/src", tag_suffix=None)
    second = BuildConfig.create(root_dir=str(tmp_path), path="/src", tag_suffix="")
    assert first.tag_suffix.isdigit() and len(first.tag_suffix) == 20
    assert second.tag_suffix > first.tag_suffix


def test_tag_suffix_strictly_increases():
    now = datetime.now(timezone.utc)
    first = new_tag_suffix(now)
    second = new_tag_suffix(now)
    assert second > first
