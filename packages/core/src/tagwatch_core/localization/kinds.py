"""Kinds of strings files, and where each one lives in a platform's repository."""

from __future__ import annotations

from enum import IntEnum

from tagwatch_core.platform import Platform

ANDROID_DEFAULT_STRINGS_FILENAME = "app/src/main/res/values/strings.xml"

_LPROJ = "Signal/translations/{}.lproj"
_FASTLANE = "fastlane/metadata/{}"


class StringsFileKind(IntEnum):
    MAIN = 0
    INFO_PLIST = 1
    PLURAL_AWARE = 2
    APP_STORE_DESCRIPTION = 3
    APP_STORE_RELEASE_NOTES = 4

    @property
    def label(self) -> str:
        return _LABELS[self]

    def applies_to(self, platform: Platform) -> bool:
        if platform is Platform.IOS:
            return True
        return platform in (Platform.ANDROID, Platform.DESKTOP) and self is StringsFileKind.MAIN

    @classmethod
    def for_platform(cls, platform: Platform) -> list[StringsFileKind]:
        return [kind for kind in cls if kind.applies_to(platform)]

    @property
    def is_app_store_metadata(self) -> bool:
        return self in (StringsFileKind.APP_STORE_DESCRIPTION, StringsFileKind.APP_STORE_RELEASE_NOTES)

    def path_template(self, platform: Platform) -> str:
        """Path of this file with ``{}`` in place of the language folder value."""
        if not self.applies_to(platform):
            raise ValueError(f"{platform} has no {self.label} strings file")
        if platform is Platform.ANDROID:
            return "app/src/main/res/values-{}/strings.xml"
        if platform is Platform.DESKTOP:
            return "_locales/{}/messages.json"
        return _IOS_TEMPLATES[self]

    def path(self, platform: Platform, full_code: str) -> str:
        """Path of this file for a language's full code such as ``pt-BR``."""
        if platform is Platform.ANDROID:
            if full_code == "en":
                return ANDROID_DEFAULT_STRINGS_FILENAME
            return self.path_template(platform).format(full_code.replace("-", "-r"))
        if self.is_app_store_metadata:
            return self.path_template(platform).format(full_code)
        return self.path_template(platform).format(full_code.replace("-", "_"))


_LABELS = {
    StringsFileKind.MAIN: "main",
    StringsFileKind.INFO_PLIST: "info plist",
    StringsFileKind.PLURAL_AWARE: "plural aware",
    StringsFileKind.APP_STORE_DESCRIPTION: "description",
    StringsFileKind.APP_STORE_RELEASE_NOTES: "release notes",
}

_IOS_TEMPLATES = {
    StringsFileKind.MAIN: f"{_LPROJ}/Localizable.strings",
    StringsFileKind.INFO_PLIST: f"{_LPROJ}/InfoPlist.strings",
    StringsFileKind.PLURAL_AWARE: f"{_LPROJ}/PluralAware.stringsdict",
    StringsFileKind.APP_STORE_DESCRIPTION: f"{_FASTLANE}/description.txt",
    StringsFileKind.APP_STORE_RELEASE_NOTES: f"{_FASTLANE}/release_notes.txt",
}
