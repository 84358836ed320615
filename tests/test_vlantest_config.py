"""Tests for VerifierConfig."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from vsphereops.vlantest.config import VerifierConfig


class TestVerifierConfig:
    def test_defaults(self):
        config = VerifierConfig()
        assert config.probe_count == 3
        assert config.probe_timeout == 30.0
        assert config.network_prefix == "vlan-testing-"
        assert config.exclude_switches == []
        assert config.cleanup_network is False
        assert config.max_concurrency == 4

    def test_network_name_is_deterministic(self):
        config = VerifierConfig()
        assert config.test_network_name("dvs-21") == "vlan-testing-dvs-21"
        assert config.test_network_name("dvs-21") == config.test_network_name("dvs-21")

    def test_custom_prefix(self):
        assert VerifierConfig(network_prefix="vt-").test_network_name("dvs-9") == "vt-dvs-9"

    def test_legacy_prefix(self):
        config = VerifierConfig(network_prefix="vlan-testing-psscript-")
        assert config.test_network_name("dvs-21") == "vlan-testing-psscript-dvs-21"

    @pytest.mark.parametrize(
        "name,excluded",
        [
            ("DSwitch-Storage", True),
            ("dswitch-storage-b", True),
            ("DSwitch-Prod", False),
            ("vMotion", True),
        ],
    )
    def test_exclusion_is_case_insensitive_glob(self, name, excluded):
        config = VerifierConfig(exclude_switches=["*storage*", "VMOTION"])
        assert config.is_excluded(name) is excluded

    @pytest.mark.parametrize("field,value", [("probe_count", 0), ("max_concurrency", 0), ("probe_timeout", 0)])
    def test_rejects_non_positive(self, field, value):
        with pytest.raises(ValidationError):
            VerifierConfig(**{field: value})
