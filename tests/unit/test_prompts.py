"""Tests for prompt text and the platform table."""

import pytest

from blueprint_stream.prompts import (
    PLATFORMS,
    Platform,
    PlatformProfile,
    PromptBuilder,
    all_platforms,
    get_profile,
)


@pytest.mark.unit
def test_platform_table_is_exhaustive():
    assert set(PLATFORMS) == set(Platform)
    assert all(isinstance(p, PlatformProfile) for p in PLATFORMS.values())


@pytest.mark.unit
def test_get_profile_accepts_values():
    assert get_profile("replit") is PLATFORMS[Platform.REPLIT]
    with pytest.raises(ValueError):
        get_profile("notepad")


@pytest.mark.unit
def test_all_platforms_order():
    assert all_platforms()[0] == Platform.REPLIT
    assert len(all_platforms()) == 10


@pytest.mark.unit
@pytest.mark.parametrize("platform", list(Platform))
def test_build_system_prompt(platform):
    builder = PromptBuilder()
    profile = get_profile(platform)

    prompt = builder.build(platform)

    assert f"**PLATFORM CONTEXT: {profile.name}**" in prompt
    assert f"**{profile.name.upper()} OPTIMIZATION:**" in prompt
    assert all(f"- {item}" in prompt for item in profile.optimizations)
    assert "[object Object]" not in prompt
    assert builder.build(platform) == prompt


@pytest.mark.unit
def test_build_user_message():
    message = PromptBuilder.build_user_message("A {weird} prompt")

    assert message.startswith("Generate a comprehensive technical blueprint for: A {weird} prompt")
    assert "CRITICAL COMPLETION REQUIREMENTS" in message


@pytest.mark.unit
def test_profiles_are_frozen():
    with pytest.raises(Exception):
        PLATFORMS[Platform.V0].name = "Other"
