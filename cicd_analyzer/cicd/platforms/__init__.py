"""Per-platform structural analyzers."""

from cicd.platforms.base import PlatformAnalyzer
from cicd.platforms.bitbucket import BitbucketPipelinesAnalyzer
from cicd.platforms.github import GitHubActionsAnalyzer
from cicd.platforms.gitlab import GitLabCIAnalyzer

PLATFORM_ANALYZERS: dict[str, PlatformAnalyzer] = {
    analyzer.platform: analyzer
    for analyzer in (
        GitHubActionsAnalyzer(),
        GitLabCIAnalyzer(),
        BitbucketPipelinesAnalyzer(),
    )
}

SUPPORTED_PLATFORMS: tuple[str, ...] = tuple(PLATFORM_ANALYZERS)


def get_platform_analyzer(platform: str) -> PlatformAnalyzer | None:
    return PLATFORM_ANALYZERS.get(platform)


__all__ = [
    "BitbucketPipelinesAnalyzer",
    "GitHubActionsAnalyzer",
    "GitLabCIAnalyzer",
    "PLATFORM_ANALYZERS",
    "PlatformAnalyzer",
    "SUPPORTED_PLATFORMS",
    "get_platform_analyzer",
]
