"""
Deployment id generation for Cloud Foundry.

App names are namespaced with a configured prefix and an optional group so
several tenants can share one space. With random prefixes enabled, two short
words are appended to the prefix once, when the generator is built.
"""

import logging
import random
import re
from typing import Optional

from cf_deployer.exceptions import ConfigurationError

from .properties import CloudFoundryDeployerProperties

logger = logging.getLogger(__name__)

_ILLEGAL_CHARS = re.compile(r"[^A-Za-z0-9-]")

WORDS = (
    "amber", "anvil", "apple", "arrow", "aspen", "badger", "bamboo", "basil",
    "beacon", "birch", "bison", "bramble", "breeze", "brook", "cactus", "canyon",
    "cedar", "cherry", "cinder", "clover", "cobalt", "comet", "copper", "coral",
    "cosmic", "cricket", "crystal", "cypress", "dahlia", "delta", "dune", "eagle",
    "ember", "falcon", "fennel", "fern", "finch", "fjord", "flint", "forest",
    "fox", "galaxy", "garnet", "geyser", "ginger", "glacier", "granite", "grove",
    "harbor", "hazel", "heron", "hickory", "indigo", "iris", "ivory", "jade",
    "jasper", "juniper", "kestrel", "lagoon", "lantern", "lark", "laurel", "lemon",
    "lilac", "linden", "lotus", "lunar", "magpie", "maple", "marble", "meadow",
    "mesa", "meteor", "mint", "nebula", "nectar", "nimbus", "oak", "oasis",
    "onyx", "orbit", "orchid", "osprey", "otter", "pebble", "pepper", "pine",
    "planet", "plum", "prairie", "quartz", "quill", "raven", "reef", "ridge",
    "river", "robin", "saffron", "sage", "sequoia", "shadow", "sierra", "silver",
    "sparrow", "spruce", "summit", "sunset", "thistle", "thunder", "tiger", "topaz",
    "tundra", "valley", "velvet", "violet", "walnut", "willow", "wren", "zephyr",
)


class WordListRandomWords:
    """Source of random words drawn from a fixed list."""

    def __init__(self, words: tuple[str, ...] = WORDS, rng: Optional[random.Random] = None):
        if not words:
            raise ConfigurationError("Word list must not be empty")
        self.words = words
        self._rng = rng or random.SystemRandom()

    def get_words(self, count: int) -> list[str]:
        """Return ``count`` words, possibly repeating."""
        return [self._rng.choice(self.words) for _ in range(count)]


class CloudFoundryAppNameGenerator:
    """Generates platform-legal deployment ids from app names."""

    def __init__(
        self,
        properties: CloudFoundryDeployerProperties,
        random_words: Optional[WordListRandomWords] = None,
    ):
        """
        Initialize the generator.

        Args:
            properties: Deployer properties providing the prefix settings
            random_words: Word source used when random prefixes are enabled
        """
        prefix = (properties.app_name_prefix or "").strip()
        if not prefix:
            raise ConfigurationError("app_name_prefix must not be empty")

        if properties.enable_random_app_name_prefix:
            words = (random_words or WordListRandomWords()).get_words(2)
            prefix = "-".join([prefix, *words])
            logger.info(f"Using random app name prefix {prefix}")

        self.prefix = prefix

    def generate(self, app_name: str, group: Optional[str] = None) -> str:
        """
        Generate the deployment id for an app.

        Args:
            app_name: Logical app name
            group: Optional group the app belongs to

        Returns:
            ``{prefix}-{group}-{app_name}`` or ``{prefix}-{app_name}``
        """
        parts = [self.prefix]
        if group:
            parts.append(group)
        parts.append(app_name)
        return _ILLEGAL_CHARS.sub("-", "-".join(parts))
