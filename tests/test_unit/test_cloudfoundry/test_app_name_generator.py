"""
Unit tests for deployment id generation.
"""

import random
from unittest.mock import Mock

import pytest

from cf_deployer.cloudfoundry.app_name_generator import (
    WORDS,
    CloudFoundryAppNameGenerator,
    WordListRandomWords,
)
from cf_deployer.cloudfoundry.properties import CloudFoundryDeployerProperties
from cf_deployer.exceptions import ConfigurationError

pytestmark = pytest.mark.unit


class TestCloudFoundryAppNameGenerator:
    """Test CloudFoundryAppNameGenerator."""

    def test_generate_with_group(self, deployer_properties):
        """Test the group is inserted between prefix and name."""
        generator = CloudFoundryAppNameGenerator(deployer_properties)

        assert generator.generate("time", "ticktock") == "dataflow-server-ticktock-time"

    @pytest.mark.parametrize("group", [None, ""])
    def test_generate_without_group(self, deployer_properties, group):
        """Test names without a group."""
        generator = CloudFoundryAppNameGenerator(deployer_properties)

        assert generator.generate("time", group) == "dataflow-server-time"

    @pytest.mark.parametrize(
        "app_name,group",
        [("log", "g1"), ("http-source", "stream"), ("a", "b")],
    )
    def test_generate_shape(self, deployer_properties, app_name, group):
        """Test names follow prefix-group-name for plain inputs."""
        generator = CloudFoundryAppNameGenerator(deployer_properties)

        assert generator.generate(app_name, group) == f"dataflow-server-{group}-{app_name}"
        assert generator.generate(app_name) == f"dataflow-server-{app_name}"

    def test_illegal_characters_are_replaced(self, deployer_properties):
        """Test names are made platform-legal."""
        generator = CloudFoundryAppNameGenerator(deployer_properties)

        assert generator.generate("my.app_v2", "team a") == "dataflow-server-team-a-my-app-v2"

    @pytest.mark.parametrize("prefix", ["", "   "])
    def test_empty_prefix_fails(self, prefix):
        """Test a blank prefix is a configuration error."""
        properties = CloudFoundryDeployerProperties(
            app_name_prefix=prefix, enable_random_app_name_prefix=False
        )

        with pytest.raises(ConfigurationError, match="app_name_prefix"):
            CloudFoundryAppNameGenerator(properties)

    def test_random_prefix(self):
        """Test random mode appends two words to the prefix once."""
        properties = CloudFoundryDeployerProperties(app_name_prefix="server")
        words = Mock()
        words.get_words.return_value = ["amber", "fox"]

        generator = CloudFoundryAppNameGenerator(properties, words)

        assert generator.prefix == "server-amber-fox"
        assert generator.generate("time") == "server-amber-fox-time"
        assert generator.generate("time", "ticktock") == "server-amber-fox-ticktock-time"
        words.get_words.assert_called_once_with(2)

    def test_random_prefix_is_stable(self):
        """Test the generator is deterministic for its lifetime."""
        properties = CloudFoundryDeployerProperties(app_name_prefix="server")
        generator = CloudFoundryAppNameGenerator(properties)

        assert generator.generate("time") == generator.generate("time")
        prefix, first, second = generator.prefix.split("-")
        assert prefix == "server"
        assert first in WORDS
        assert second in WORDS


class TestWordListRandomWords:
    """Test WordListRandomWords."""

    def test_words_are_short_and_legal(self):
        """Test the built-in list only holds short lower case words."""
        for word in WORDS:
            assert word.isalpha()
            assert word.islower()
            assert len(word) <= 8

    def test_get_words_is_seedable(self):
        """Test injecting a seeded random source."""
        first = WordListRandomWords(rng=random.Random(7)).get_words(3)
        second = WordListRandomWords(rng=random.Random(7)).get_words(3)

        assert first == second
        assert len(first) == 3

    def test_empty_word_list_fails(self):
        """Test an empty word list is rejected."""
        with pytest.raises(ConfigurationError):
            WordListRandomWords(words=())
