"""
Prompt Builder
System and user prompt text for blueprint generation.
"""

from .platforms import Platform, PlatformProfile, get_profile

CORE_INSTRUCTIONS = """You are an expert software engineer generating REAL, EXECUTABLE CODE blueprints for production applications.

**PLATFORM CONTEXT: {name}**
Platform Description: {description}
Runtime: {runtime}
Frontend: {frontend}
Backend: {backend}
Database: {database}
Deployment: {deployment}

**ABSOLUTE REQUIREMENTS:**
- Every function MUST contain actual implementation with real calculations, algorithms, and business logic
- Every SQL statement MUST use specific data types (VARCHAR(255), INTEGER, TIMESTAMP, DECIMAL(10,2))
- Every UI component MUST have complete markup with actual event handlers and state management
- Every API endpoint MUST have full request/response handling code with real data processing

**FORBIDDEN PLACEHOLDER PATTERNS - DO NOT OUTPUT:**
- `// TODO: Implement logic`
- `// Add validation here`
- `// Process data`
- Generic variable names like `data`, `result`, `value`

**REQUIRED SECTIONS:**
Architecture, Database Schema, Authentication, API Endpoints, Frontend, Backend,
Deployment, Security, Testing, Performance.

Generate blueprints that a developer can copy-paste and run immediately without any modifications."""

USER_TEMPLATE = """Generate a comprehensive technical blueprint for: {prompt}

CRITICAL COMPLETION REQUIREMENTS:
- Every function MUST have complete implementation with closing braces
- Every code block MUST be syntactically complete and runnable
- Never stop mid-function or leave incomplete implementations
- Complete all sections with working code examples
- If you start a function, database schema, or component, finish it completely"""


class PromptBuilder:
    """Builds prompt text sent upstream. Pure and total over Platform."""

    def build(self, platform: Platform) -> str:
        """
        Build the system prompt for a platform.

        Args:
            platform: Target platform

        Returns:
            System instructions text
        """
        profile = get_profile(platform)
        return CORE_INSTRUCTIONS.format(
            name=profile.name,
            description=profile.primary_function,
            runtime=profile.tech_stack.runtime,
            frontend=", ".join(profile.tech_stack.frontend),
            backend=", ".join(profile.tech_stack.backend),
            database=", ".join(profile.tech_stack.database),
            deployment=", ".join(profile.tech_stack.deployment),
        ) + self._optimizations(profile)

    @staticmethod
    def build_user_message(prompt: str) -> str:
        """Wrap the app description with completion requirements."""
        return USER_TEMPLATE.format(prompt=prompt)

    @staticmethod
    def _optimizations(profile: PlatformProfile) -> str:
        lines = [f"\n\n**{profile.name.upper()} OPTIMIZATION:**"]
        lines.extend(f"- {item}" for item in profile.optimizations)
        return "\n".join(lines)
