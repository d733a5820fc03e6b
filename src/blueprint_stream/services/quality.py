"""
Blueprint Quality Assessment
Keyword heuristics over finished blueprint content. Independent of the relay.
"""

import re
from typing import Protocol

from pydantic import BaseModel

from ..prompts.platforms import Platform, PlatformProfile, get_profile

MINIMUM = 9.0
EXCELLENT = 9.5

MODERN_PATTERNS = (
    "typescript", "react", "next.js", "tailwind", "postgresql",
    "authentication", "api", "database", "security", "performance",
)
SECURITY_BASICS = ("authentication", "authorization", "encryption", "security", "cors", "https")
SCALING_BASICS = ("scaling", "performance", "caching", "database", "optimization")
ESSENTIAL_SECTIONS = (
    "architecture", "database", "authentication", "api", "frontend",
    "backend", "deployment", "security", "testing", "performance",
)
STEP_PATTERNS = ("step", "install", "configure", "create", "implement")
COMMAND_PATTERNS = ("npm", "yarn", "pip", "git", "docker", "curl")
SCALABILITY_PATTERNS = (
    "horizontal scaling", "load balancing", "caching", "cdn",
    "microservices", "database optimization", "performance",
)
SECURITY_PATTERNS = (
    "authentication", "authorization", "encryption", "https",
    "cors", "csrf", "sql injection", "xss", "security headers",
)
PERFORMANCE_PATTERNS = (
    "optimization", "caching", "lazy loading", "code splitting",
    "database indexing", "cdn", "compression", "minification",
)
PLACEHOLDER_RE = re.compile(r"todo|placeholder|tbd|fix|implement", re.IGNORECASE)


class QualityMetrics(BaseModel):
    """Scores on a 0-10 scale."""

    platform_accuracy: float
    technical_accuracy: float
    completeness: float
    actionability: float
    scalability: float
    security: float
    performance: float

    @property
    def overall(self) -> float:
        scores = (
            self.platform_accuracy, self.technical_accuracy, self.completeness,
            self.actionability, self.scalability, self.security, self.performance,
        )
        return sum(scores) / len(scores)


class QualityReport(BaseModel):
    """Assessment outcome."""

    is_valid: bool
    overall_score: float
    metrics: QualityMetrics
    issues: list[str]
    recommendations: list[str]
    enhancement_suggestions: list[str]


class QualityAssessor(Protocol):
    """Scores blueprint content."""

    def assess(self, content: str, platform: Platform, prompt: str) -> QualityReport: ...


def _count(text: str, patterns: tuple[str, ...]) -> int:
    return sum(1 for p in patterns if p in text)


def _clamp(score: float) -> float:
    return max(0.0, min(10.0, score))


class KeywordQualityAssessor:
    """Keyword-counting heuristics per quality dimension."""

    def assess(self, content: str, platform: Platform, prompt: str) -> QualityReport:
        profile = get_profile(platform)
        text = content.lower()
        metrics = QualityMetrics(
            platform_accuracy=self._platform_accuracy(text, Platform(platform), profile),
            technical_accuracy=self._technical_accuracy(text),
            completeness=self._completeness(content, text),
            actionability=self._actionability(content, text),
            scalability=_clamp(10.0 - (2.0 if _count(text, SCALABILITY_PATTERNS) < 3 else 0.0)),
            security=_clamp(10.0 - (2.0 if _count(text, SECURITY_PATTERNS) < 4 else 0.0)),
            performance=_clamp(10.0 - (1.5 if _count(text, PERFORMANCE_PATTERNS) < 3 else 0.0)),
        )
        overall = metrics.overall
        return QualityReport(
            is_valid=overall >= MINIMUM,
            overall_score=round(overall, 2),
            metrics=metrics,
            issues=self._issues(metrics),
            recommendations=self._recommendations(metrics, profile),
            enhancement_suggestions=self._enhancements(metrics, profile),
        )

    @staticmethod
    def _platform_accuracy(text: str, platform: Platform, profile: PlatformProfile) -> float:
        score = 10.0
        stack = profile.tech_stack
        required = [*stack.frontend, *stack.backend, *stack.database]
        mentioned = sum(1 for tech in required if tech.lower() in text)
        if mentioned < len(required) * 0.6:
            score -= 2.0

        features = profile.core_features
        used = sum(1 for f in features if f.lower().split(" ")[0] in text)
        if used < len(features) * 0.5:
            score -= 1.5

        competitors = [p.value for p in Platform if p != platform and p.value in text]
        if competitors:
            score -= 1.0

        if profile.pricing_model.lower().split(" ")[0] not in text:
            score -= 0.5
        return _clamp(score)

    @staticmethod
    def _technical_accuracy(text: str) -> float:
        score = 10.0
        if _count(text, MODERN_PATTERNS) < len(MODERN_PATTERNS) * 0.7:
            score -= 1.5
        if _count(text, SECURITY_BASICS) < 3:
            score -= 1.0
        if _count(text, SCALING_BASICS) < 3:
            score -= 1.0
        return _clamp(score)

    @staticmethod
    def _completeness(content: str, text: str) -> float:
        score = 10.0
        if _count(text, ESSENTIAL_SECTIONS) < len(ESSENTIAL_SECTIONS) * 0.8:
            score -= 2.0
        if content.count("```") / 2 < 5:
            score -= 1.0
        if len(content) < 5000:
            score -= 1.5
        return _clamp(score)

    @staticmethod
    def _actionability(content: str, text: str) -> float:
        score = 10.0
        if _count(text, STEP_PATTERNS) < 4:
            score -= 1.5
        if _count(text, COMMAND_PATTERNS) < 2:
            score -= 1.0
        if len(PLACEHOLDER_RE.findall(content)) > 3:
            score -= 2.0
        return _clamp(score)

    @staticmethod
    def _issues(m: QualityMetrics) -> list[str]:
        checks = [
            (m.platform_accuracy, "Platform accuracy too low", "missing platform-specific features and technologies"),
            (m.technical_accuracy, "Technical accuracy needs improvement", "modernize tech stack and patterns"),
            (m.completeness, "Blueprint incomplete", "missing essential sections and details"),
            (m.actionability, "Low actionability", "need more specific implementation steps"),
            (m.scalability, "Insufficient scalability planning", "add scaling strategies"),
            (m.security, "Security coverage inadequate", "implement comprehensive security measures"),
            (m.performance, "Performance optimization missing", "add performance enhancement strategies"),
        ]
        return [
            f"{label} ({score:.1f}/10) - {hint}" for score, label, hint in checks if score < MINIMUM
        ]

    @staticmethod
    def _recommendations(m: QualityMetrics, profile: PlatformProfile) -> list[str]:
        recommendations = []
        if m.overall < MINIMUM:
            recommendations.append(
                f"Overall score {m.overall:.1f}/10 needs improvement to reach the 9/10 target"
            )
        if m.platform_accuracy < EXCELLENT:
            recommendations.append(
                f"Enhance platform-specific integration and feature utilization for {profile.name}"
            )
        if m.technical_accuracy < EXCELLENT:
            recommendations.append("Update to latest technical patterns and industry best practices")
        if m.completeness < EXCELLENT:
            recommendations.append("Add more comprehensive sections with detailed implementation guidance")
        return recommendations

    @staticmethod
    def _enhancements(m: QualityMetrics, profile: PlatformProfile) -> list[str]:
        enhancements = [
            f"Integrate {', '.join(profile.core_features[:3])} for better platform utilization",
            f"Optimize for {profile.target_audience} with appropriate complexity level",
            f"Leverage {profile.key_differentiator} as primary architectural advantage",
        ]
        if m.technical_accuracy < EXCELLENT:
            enhancements.append("Add TypeScript for enhanced type safety and developer experience")
            enhancements.append("Include comprehensive testing strategy with unit and integration tests")
        if m.security < EXCELLENT:
            enhancements.append("Add security headers, CORS configuration, and input validation")
            enhancements.append("Include encryption at rest and in transit specifications")
        if m.performance < EXCELLENT:
            enhancements.append("Add caching strategies with Redis and CDN integration")
            enhancements.append("Implement database optimization with proper indexing")
        return enhancements
