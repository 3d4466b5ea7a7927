from __future__ import annotations

from dataclasses import dataclass

import pycountry


@dataclass(frozen=True)
class Language:
    reference_name: str
    language_code: str
    region_code: str | None = None

    @property
    def full_code(self) -> str:
        if self.region_code:
            return f"{self.language_code}-{self.region_code}"
        return self.language_code

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.language_code, self.region_code or "")

    def __str__(self) -> str:
        return f"{self.reference_name} (`{self.full_code}`)"

    @classmethod
    def from_code(cls, code: str) -> Language:
        """Build a Language from ``en``, ``en_US``, ``en-US`` or Android's ``en-rUS``.

        Raises ValueError for anything that isn't a known ISO 639 language code,
        e.g. Android resource qualifiers like ``land`` or ``v9``.
        """
        parts = code.replace("-r", "_").replace("-", "_").split("_")
        if len(parts) > 2:
            raise ValueError(f"incorrect count of code parts in {code!r}")

        language_code = parts[0]
        if not 2 <= len(language_code) <= 3:
            raise ValueError(f"language code length of {code!r} is not in range 2..3")

        if len(language_code) == 2:
            record = pycountry.languages.get(alpha_2=language_code)
        else:
            record = pycountry.languages.get(alpha_3=language_code)
        if record is None:
            raise ValueError(f"could not look up language by code {language_code!r}")

        region_code = parts[1] if len(parts) == 2 else None
        return cls(reference_name=record.name, language_code=language_code, region_code=region_code)


ENGLISH = Language(reference_name="English", language_code="en")
