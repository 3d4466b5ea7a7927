from __future__ import annotations

import logging
from dataclasses import dataclass, field

from github import Github, GithubException

from tagwatch_core.errors import ComparisonError, TagGapError
from tagwatch_core.platform import ANDROID_BUILD_CONFIGURATION_PATH, BuildConfiguration, Platform
from tagwatch_core.version import Version, parse_version

logger = logging.getLogger(__name__)

# GitHub returns at most this many files for a comparison, whatever the docs say.
COMPARISON_MAX_FILES = 300
# Same for a single commit.
COMMIT_MAX_FILES = 3000

_TAGS_PER_PAGE = 100


@dataclass(frozen=True)
class Tag:
    name: str

    def version(self) -> Version:
        return parse_version(self.name)

    def exact_version_string(self) -> str:
        return self.name.replace("v", "")


@dataclass(frozen=True)
class CommitInfo:
    sha: str
    message: str


@dataclass
class Comparison:
    total_commits: int
    commits: list[CommitInfo] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    @property
    def files_likely_complete(self) -> bool:
        return len(self.files) != COMPARISON_MAX_FILES


def get_github(token: str | None) -> Github:
    if token:
        return Github(token, per_page=_TAGS_PER_PAGE)
    return Github(per_page=_TAGS_PER_PAGE)


def get_repo(gh: Github, platform: Platform):
    return gh.get_repo(platform.repo_slug)


def filter_tags(names, platform: Platform) -> list[tuple[Tag, Version]]:
    """Parse tag names, keep the ones the platform publishes, and sort them oldest first.

    Names that don't parse as versions are dropped silently.
    """
    tags = []
    for name in names:
        try:
            version = parse_version(name)
        except ValueError:
            continue
        if platform.should_post_version(version):
            tags.append((Tag(name), version))
    tags.sort(key=lambda pair: pair[1])
    return tags


def tags_to_post(sorted_tags: list[tuple[Tag, Version]], last_posted_tag: Tag, platform: Platform):
    """Return the suffix of ``sorted_tags`` that starts at ``last_posted_tag``.

    The first two entries are the (old, new) pair to post next; a suffix of
    length one means the latest version is already posted.
    """
    for index, (tag, _) in enumerate(sorted_tags):
        if tag == last_posted_tag:
            return sorted_tags[index:]
    raise TagGapError(str(platform), last_posted_tag.name)


def find_previous_release_tag(sorted_tags: list[tuple[Tag, Version]], new_version: Version) -> Tag | None:
    """Scan backwards for the newest tag below ``new_version`` from a different major.minor release."""
    for tag, version in reversed(sorted_tags):
        if version < new_version and not version.same_release(new_version):
            return tag
    return None


def get_sorted_tags(repo, platform: Platform, last_posted_tag: Tag) -> list[tuple[Tag, Version]]:
    """Fetch tag pages until one contains ``last_posted_tag`` (or pages run out), then filter."""
    tags = repo.get_tags()
    names: list[str] = []
    page = 0
    while True:
        logger.debug("Fetching %s tags page %d", platform, page)
        batch = [tag.name for tag in tags.get_page(page)]
        if not batch:
            logger.warning("Ran out of %s tag pages before finding %s", platform, last_posted_tag.name)
            break
        names.extend(batch)
        if last_posted_tag.name in batch:
            break
        page += 1

    sorted_tags = filter_tags(names, platform)
    logger.debug("%d %s tags after filtering", len(sorted_tags), platform)
    return sorted_tags


def get_comparison(repo, old: str, new: str) -> Comparison:
    """Return all commits and (up to 300) changed files between two tags.

    Commits are paginated; the accumulated count must equal ``total_commits``.
    """
    logger.debug("Comparing %s...%s in %s", old, new, repo.full_name)
    try:
        comparison = repo.compare(old, new)
        commits = [CommitInfo(sha=c.sha, message=c.commit.message) for c in comparison.commits]
        files = [f.filename for f in (comparison.files or [])]
        total = comparison.total_commits
    except GithubException as e:
        raise ComparisonError(f"could not compare {old}...{new} in {repo.full_name}") from e

    if total != len(commits):
        raise ComparisonError(
            f"incomplete comparison {old}...{new}: total_commits = {total} but got {len(commits)} commits"
        )

    logger.debug("%d commit(s), %d file(s) in comparison", len(commits), len(files))
    return Comparison(total_commits=total, commits=commits, files=files)


def get_commit_files(repo, sha: str) -> list[str]:
    """Return the (up to 3000) files changed by a single commit."""
    logger.debug("Fetching files of commit %s in %s", sha, repo.full_name)
    try:
        files = [f.filename for f in (repo.get_commit(sha).files or [])]
    except GithubException as e:
        raise ComparisonError(f"could not get the files of commit {sha} in {repo.full_name}") from e
    logger.debug("%d file(s) in commit %s", len(files), sha)
    return files


def get_build_configuration(repo, tag: Tag) -> BuildConfiguration:
    contents = repo.get_contents(ANDROID_BUILD_CONFIGURATION_PATH, ref=tag.name)
    return BuildConfiguration.from_gradle(contents.decoded_content.decode("utf-8", errors="replace"))
