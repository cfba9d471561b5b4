# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Version parsing and comparison.

Versions in the compatibility tables look like '11.8', '2.10.0', '8' or
'1.13.1+cu117'. Only major, minor and patch take part in ordering; a
'-prerelease' or '+local' suffix is kept but ignored.
"""

from dataclasses import dataclass
from typing import Iterable

from packaging.version import InvalidVersion
from packaging.version import Version as PackagingVersion

from ..exceptions import EmptyInputError, VersionParseError


@dataclass(frozen=True)
class Version:
    """
    Parsed version.

    Examples:
        - 11.8 -> Version(major=11, minor=8, patch=0)
        - 1.13.1+cu117 -> Version(major=1, minor=13, patch=1, local='cu117')
        - 12.0.0-rc1 -> Version(major=12, minor=0, patch=0, prerelease='rc1')
    """

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    local: str = ""

    @classmethod
    def parse(cls, version: str) -> "Version":
        """
        Parse a version string.

        Args:
            version: Version string (e.g., '11.8', '2.10.0', '1.13.1+cu117')

        Returns:
            Parsed Version object.

        Raises:
            VersionParseError: If the string is not a dotted numeric version.
        """
        if not isinstance(version, str) or not version:
            raise VersionParseError(str(version), "empty version")

        core, _, local = version.partition("+")
        core, _, prerelease = core.partition("-")

        # packaging also tolerates a leading "v" and surrounding whitespace
        if not core[:1].isdigit() or not core[-1:].isdigit():
            raise VersionParseError(version, "expected dotted numeric release")

        try:
            parsed = PackagingVersion(core)
        except InvalidVersion as e:
            raise VersionParseError(version, str(e)) from e

        # packaging accepts epochs, pre/post/dev segments; the tables never use them
        if parsed.epoch or parsed.pre or parsed.post is not None or parsed.dev is not None:
            raise VersionParseError(version, "expected dotted numeric release")

        release = parsed.release + (0, 0)
        return cls(
            major=release[0],
            minor=release[1],
            patch=release[2],
            prerelease=prerelease,
            local=local,
        )

    @property
    def key(self):
        """Ordering key. Suffixes do not participate."""
        return (self.major, self.minor, self.patch)

    def greater(self, other: "Version") -> bool:
        """Return True if this version is strictly greater than other."""
        return self.key > other.key

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.local:
            text += f"+{self.local}"
        return text


def version_greater(a: str, b: str) -> bool:
    """
    Report whether version string a is strictly greater than b.

    Raises:
        VersionParseError: If either string cannot be parsed.
    """
    return Version.parse(a).greater(Version.parse(b))


def latest_version(versions: Iterable[str]) -> str:
    """
    Return the greatest version string. The first one wins on exact ties.

    Raises:
        EmptyInputError: If versions is empty.
        VersionParseError: If any version cannot be parsed.
    """
    latest = None
    latest_parsed = None
    for version in versions:
        parsed = Version.parse(version)
        if latest is None or parsed.greater(latest_parsed):
            latest = version
            latest_parsed = parsed
    if latest is None:
        raise EmptyInputError("Cannot pick the latest version from an empty list")
    return latest
