"""
Platform Profiles
Closed table of target development platforms and what we know about them.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Platform(str, Enum):
    """Supported target platforms."""

    REPLIT = "replit"
    CURSOR = "cursor"
    LOVABLE = "lovable"
    WINDSURF = "windsurf"
    BOLT = "bolt"
    CLAUDE = "claude"
    GEMINI = "gemini"
    BASE44 = "base44"
    V0 = "v0"
    RORK = "rork"


class TechStack(BaseModel):
    """Technologies a platform is built around."""

    model_config = ConfigDict(frozen=True)

    runtime: str
    frontend: tuple[str, ...]
    backend: tuple[str, ...]
    database: tuple[str, ...]
    deployment: tuple[str, ...]


class PlatformProfile(BaseModel):
    """Platform profile used for prompt text and quality checks."""

    model_config = ConfigDict(frozen=True)

    name: str
    vendor: str
    primary_function: str
    target_audience: str
    core_features: tuple[str, ...]
    tech_stack: TechStack
    pricing_model: str
    key_differentiator: str
    optimizations: tuple[str, ...]


PLATFORMS: dict[Platform, PlatformProfile] = {
    Platform.REPLIT: PlatformProfile(
        name="Replit",
        vendor="Replit, Inc.",
        primary_function="AI-first, collaborative, browser-based IDE and cloud platform",
        target_audience="Hobbyists, students, professional teams, and enterprises",
        core_features=(
            "Replit Agent for full-stack app generation",
            "Element Selector for visual UI modification",
            "Real-time collaborative coding (Multiplayer)",
        ),
        tech_stack=TechStack(
            runtime="Nix-based cloud environments",
            frontend=("React", "Next.js", "Vue", "Svelte", "HTML/CSS/JS"),
            backend=("Node.js", "Python", "Go", "Java", "C++", "Rust"),
            database=("PostgreSQL", "ReplDB (Key-Value)", "Object Storage", "Redis"),
            deployment=("Replit Autoscale", "Static hosting", "Reserved VM", "Scheduled jobs"),
        ),
        pricing_model="Freemium ($20/month Core, $35/month Teams)",
        key_differentiator="Complete integrated platform with zero-setup collaborative environment",
        optimizations=(
            "Zero-setup development environment",
            "Nix package management integration",
            "Built-in database solutions (ReplDB/PostgreSQL)",
            "Real-time collaboration features",
            "Deployment simplicity with autoscaling",
        ),
    ),
    Platform.CURSOR: PlatformProfile(
        name="Cursor",
        vendor="Anysphere Inc.",
        primary_function="AI-first code editor with deep codebase understanding",
        target_audience="Professional developers and enterprise teams",
        core_features=(
            "Agent Mode for autonomous task completion",
            "Codebase indexing with embeddings for context",
            "@-Mentions for precise context control",
        ),
        tech_stack=TechStack(
            runtime="VS Code fork with TypeScript",
            frontend=("React", "Vue", "Angular", "Svelte", "Next.js"),
            backend=("Node.js", "Python", "Go", "Rust", "Java", "C#"),
            database=("PostgreSQL", "MongoDB", "MySQL", "SQLite", "Redis"),
            deployment=("External services required",),
        ),
        pricing_model="Subscription-based ($20/month Pro, Enterprise custom)",
        key_differentiator="Deep project-wide contextual understanding with VS Code familiarity",
        optimizations=(
            "AI-powered development workflow",
            "Advanced code completion and refactoring",
            "Local development with VS Code integration",
            "Terminal-based productivity features",
            "Enterprise security and compliance",
        ),
    ),
    Platform.LOVABLE: PlatformProfile(
        name="Lovable",
        vendor="Lovable",
        primary_function="AI-powered platform for production-ready full-stack applications",
        target_audience="Non-technical founders, startups, and teams seeking rapid development",
        core_features=(
            "AI Fullstack Engineer for conversational development",
            "Vibe Coding philosophy with natural language",
            "Multiplayer collaboration with real-time co-editing",
        ),
        tech_stack=TechStack(
            runtime="Browser-based development environment",
            frontend=("React", "Tailwind CSS", "Vite"),
            backend=("Supabase Edge Functions", "Node.js serverless"),
            database=("Supabase PostgreSQL",),
            deployment=("Lovable hosting", "Custom domains", "Vercel", "Netlify"),
        ),
        pricing_model="Credit-based system ($25/month Pro, $30/user Teams)",
        key_differentiator="Vibe coding with tight Supabase integration and security scanning",
        optimizations=(
            "Rapid prototyping capabilities",
            "Component-based architecture",
            "Real-time preview and iteration",
            "Design-to-code workflow",
            "Collaborative development environment",
        ),
    ),
    Platform.WINDSURF: PlatformProfile(
        name="Windsurf",
        vendor="Windsurf (formerly Codeium)",
        primary_function="Agentic IDE with AI-driven code assistance and database integration",
        target_audience="Professional developers and enterprise teams",
        core_features=(
            "Cascade AI agent for multi-file edits and debugging",
            "Inline AI for targeted code modification",
            "Supercomplete for context-aware autocompletion",
        ),
        tech_stack=TechStack(
            runtime="Proprietary IDE with AI agents and editor plugins",
            frontend=("React", "Vue", "Angular", "Svelte", "Next.js"),
            backend=("Node.js", "Python", "Go", "Java", "PHP"),
            database=("PostgreSQL", "MongoDB", "MySQL", "Cloudflare D1"),
            deployment=("Netlify", "Vercel", "Heroku", "Railway"),
        ),
        pricing_model="Prompt credits ($15/month Pro, $30/month Teams, $60/month Enterprise)",
        key_differentiator="Enterprise-grade security with the Cascade agent and MCP integration",
        optimizations=(
            "Multi-agent development approach",
            "Autonomous code generation",
            "Advanced AI reasoning capabilities",
            "Complex project coordination",
            "Enterprise-grade development workflows",
        ),
    ),
    Platform.BOLT: PlatformProfile(
        name="Bolt",
        vendor="StackBlitz",
        primary_function="Full-stack in-browser AI agent with complete environment control",
        target_audience="Developers, product managers, designers, and learners",
        core_features=(
            "AI has full control of in-browser environment (filesystem, terminal)",
            "True full-stack generation with WebContainers",
            "Iterative refinement through conversation",
        ),
        tech_stack=TechStack(
            runtime="StackBlitz WebContainers (Node.js in browser)",
            frontend=("React", "Vue", "Svelte", "Tailwind CSS"),
            backend=("Node.js", "Express", "Fastify"),
            database=("PostgreSQL", "Prisma", "SQLite"),
            deployment=("Netlify", "Vercel", "GitHub Pages"),
        ),
        pricing_model="Token-based subscriptions ($20/month Pro, $30/month Teams)",
        key_differentiator="WebContainer architecture for full-stack generation in the browser",
        optimizations=(
            "WebContainer in-browser execution",
            "Full-stack development capabilities",
            "Package management and dependencies",
            "Live preview and debugging",
            "Deployment integration",
        ),
    ),
    Platform.CLAUDE: PlatformProfile(
        name="Claude Code",
        vendor="Anthropic",
        primary_function="Security-first CLI agent for agentic coding",
        target_audience="Professional developers, researchers, and enterprise teams",
        core_features=(
            "Terminal-based AI assistant with deep codebase understanding",
            "Security by design with explicit user approval workflows",
            "Context management via CLAUDE.md project files",
        ),
        tech_stack=TechStack(
            runtime="Node.js CLI tool installed via npm",
            frontend=("React", "Vue", "Angular", "Svelte", "Next.js", "Nuxt.js"),
            backend=("Node.js", "Python", "Go", "Rust", "Java", "C#", "PHP"),
            database=("PostgreSQL", "MongoDB", "MySQL", "SQLite", "Redis", "Cassandra"),
            deployment=("AWS", "Google Cloud", "Azure", "Heroku", "Railway", "Fly.io"),
        ),
        pricing_model="Subscription ($17/month Pro, $100/month Max) or API usage-based billing",
        key_differentiator="Security-first design with granular permissions and enterprise compliance",
        optimizations=(
            "Advanced reasoning and analysis",
            "Complex problem-solving capabilities",
            "Multi-step implementation planning",
            "Code quality and best practices",
            "Documentation and explanation",
        ),
    ),
    Platform.GEMINI: PlatformProfile(
        name="Gemini CLI",
        vendor="Google",
        primary_function="Open-source terminal-based AI agent with large context and web integration",
        target_audience="Individual developers, researchers, and budget-conscious teams",
        core_features=(
            "Open-source terminal-based AI agent with full source access",
            "Massive 1 million token context window",
            "Built-in tools (grep, file operations, terminal commands)",
        ),
        tech_stack=TechStack(
            runtime="Node.js CLI application with cross-platform support",
            frontend=("React", "Vue", "Angular", "Svelte", "Next.js", "Astro"),
            backend=("Node.js", "Python", "Go", "Java", "C#", "Rust"),
            database=("PostgreSQL", "MongoDB", "MySQL", "Cloudflare D1", "Firebase"),
            deployment=("Google Cloud", "AWS", "Azure", "Vercel", "Netlify"),
        ),
        pricing_model="Generous free tier with usage-based billing",
        key_differentiator="Open-source with large free usage limits and Google Search integration",
        optimizations=(
            "Google ecosystem integration",
            "Search API and data access",
            "Multi-modal capabilities",
            "Large context window utilization",
            "Real-time information processing",
        ),
    ),
    Platform.BASE44: PlatformProfile(
        name="Base44",
        vendor="Wix",
        primary_function="No-code full-stack app builder with an all-in-one philosophy",
        target_audience="Non-technical founders, entrepreneurs, SMBs, and internal tool creators",
        core_features=(
            "Natural language app generation with AI",
            "Comprehensive all-in-one functionality",
            "Automatic backend with authentication and database",
        ),
        tech_stack=TechStack(
            runtime="Browser-based platform with cloud infrastructure",
            frontend=("React", "Next.js", "HTML/CSS/JS", "Wix Editor"),
            backend=("Node.js", "Built-in backend services", "Wix infrastructure"),
            database=("Built-in database", "PostgreSQL", "Wix Data"),
            deployment=("Base44 hosting", "Wix hosting", "Custom domains"),
        ),
        pricing_model="Message-based credits ($20-100/month) with Wix enterprise plans",
        key_differentiator="All-in-one solution backed by Wix enterprise infrastructure",
        optimizations=(
            "Enterprise application development",
            "Scalable architecture patterns",
            "Security and compliance features",
            "Integration capabilities",
            "Performance optimization",
        ),
    ),
    Platform.V0: PlatformProfile(
        name="V0",
        vendor="Vercel",
        primary_function="UI component generator optimized for React and Next.js",
        target_audience="Frontend developers and designers",
        core_features=(
            "Prompt-to-UI generation with three design options",
            "Image-to-code from mockups and Figma designs",
            "Iterative refinement through chat interface",
        ),
        tech_stack=TechStack(
            runtime="Web-based tool hosted on v0.dev",
            frontend=("React", "Next.js", "Vue", "Svelte", "Tailwind CSS"),
            backend=("Next.js API routes", "Node.js"),
            database=("PostgreSQL", "MongoDB", "Prisma"),
            deployment=("Vercel", "Netlify"),
        ),
        pricing_model="Credit-based ($10-50/month)",
        key_differentiator="Specialized UI generation with Vercel ecosystem integration",
        optimizations=(
            "Component-first development",
            "Design system integration",
            "Rapid UI prototyping",
            "React/Next.js specialization",
            "Modern frontend patterns",
        ),
    ),
    Platform.RORK: PlatformProfile(
        name="Rork",
        vendor="Rork",
        primary_function="Mobile-first app generator for cross-platform native applications",
        target_audience="Entrepreneurs, startups, non-technical users, and mobile app creators",
        core_features=(
            "Text-to-native mobile app generation with AI",
            "Cross-platform iOS and Android compatibility",
            "React Native and Expo framework integration",
        ),
        tech_stack=TechStack(
            runtime="Browser-based platform using React Native framework",
            frontend=("React Native", "Expo", "Native UI components", "TypeScript"),
            backend=("Node.js", "Express", "Serverless functions"),
            database=("Supabase", "Firebase", "Airtable", "Realm"),
            deployment=("App Store", "Google Play Store", "Expo", "TestFlight"),
        ),
        pricing_model="Message-based ($20/month for 100 messages)",
        key_differentiator="Mobile app generation with React Native and app store deployment",
        optimizations=(
            "Mobile-first development",
            "Cross-platform capabilities",
            "Native feature integration",
            "Performance optimization",
            "User experience focus",
        ),
    ),
}


def _check_exhaustive() -> None:
    missing = set(Platform) - set(PLATFORMS)
    if missing:
        names = ", ".join(sorted(p.value for p in missing))
        raise RuntimeError(f"Platform table missing profiles for: {names}")


_check_exhaustive()


def get_profile(platform: Platform | str) -> PlatformProfile:
    """
    Look up a platform profile.

    Raises:
        ValueError: If the platform is not supported
    """
    return PLATFORMS[Platform(platform)]


def all_platforms() -> list[Platform]:
    """Supported platforms in declaration order."""
    return list(Platform)
