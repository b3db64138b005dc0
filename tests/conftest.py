"""
Shared fixtures for the dotsettings test suite.
"""

import pytest

from dotsettings.tree.deserializer import SecureDeserializer
from dotsettings.tree.node import ConfigNode

SETTINGS_YAML = """\
setting1:
  setting1_child: test_value
  deep:
    another: my value
    child:
      value: 2
setting2: 5
setting3: $SETTING3
name: test
array:
  - name: first
  - name: second
language:
  haskell:
    paradigm: functional
  smalltalk:
    paradigm: object oriented
"some-setting#": 1
items: shadowed
ports: [80, 443]
empty_list: []
mode: :production
price: !decimal 1.50
launched: 2020-01-02
"""


@pytest.fixture
def settings_yaml() -> str:
    return SETTINGS_YAML


@pytest.fixture
def settings_data():
    return SecureDeserializer().parse_document(SETTINGS_YAML)


@pytest.fixture
def settings_node(settings_data) -> ConfigNode:
    return ConfigNode(settings_data, section="settings.yml")


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.yml"
    path.write_text(SETTINGS_YAML, encoding="utf-8")
    return path
