"""Nix expression serialiser tests."""

from __future__ import annotations

import ipaddress

import pytest

from infrabase.utils.nix import nix_name, nix_string, to_nix


class TestScalars:
    @pytest.mark.parametrize("value,expected", [
        (None, "null"),
        (True, "true"),
        (False, "false"),
        (42, "42"),
        (-3, "-3"),
        (1.5, "1.5"),
        ("plain", '"plain"'),
        (ipaddress.ip_address("10.0.0.1"), '"10.0.0.1"'),
    ])
    def test_scalar(self, value, expected):
        assert to_nix(value) == expected

    def test_string_escapes(self):
        assert nix_string('say "hi"\n') == '"say \\"hi\\"\\n"'
        assert nix_string("C:\\tmp") == '"C:\\\\tmp"'
        assert nix_string("${HOME}") == '"\\${HOME}"'
        # A lone dollar is not interpolation
        assert nix_string("$5") == '"$5"'

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            to_nix(object())


class TestNames:
    def test_bare_names(self):
        assert nix_name("web1") == "web1"
        assert nix_name("ssh_port") == "ssh_port"
        assert nix_name("db-primary") == "db-primary"

    def test_quoted_names(self):
        assert nix_name("web.example.com") == '"web.example.com"'
        assert nix_name("10host") == '"10host"'
        assert nix_name("") == '""'

    def test_keywords_quoted(self):
        assert nix_name("let") == '"let"'
        assert nix_name("inherit") == '"inherit"'


class TestContainers:
    def test_empty(self):
        assert to_nix({}) == "{ }"
        assert to_nix([]) == "[ ]"

    def test_nested_attrset(self):
        value = {"web1": {"owner": "ivan", "tags": ["prod", "web"], "port": None}}
        assert to_nix(value) == (
            "{\n"
            "  web1 = {\n"
            '    owner = "ivan";\n'
            "    tags = [\n"
            '      "prod"\n'
            '      "web"\n'
            "    ];\n"
            "    port = null;\n"
            "  };\n"
            "}"
        )

    def test_negative_list_items_parenthesised(self):
        assert to_nix([-1, 2]) == "[\n  (-1)\n  2\n]"
