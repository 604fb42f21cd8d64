"""Installed package inspection."""

from insights.packages import InsightCache, PackageInsights, gather_package_insights

__all__ = ["InsightCache", "PackageInsights", "gather_package_insights"]
