"""
MindPath AI client — command-line entry point.

Usage:
    python -m src.main providers
    python -m src.main generate --schema rapport --prompt "Student enjoys robotics club" --session-type school
    python -m src.main assess --session-type career --answers answers.json
"""

from __future__ import annotations

# Load .env before any other imports so credentials are in os.environ
import src.config  # noqa: F401, E402  ensure load_dotenv runs first

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import structlog
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from src.assessment import AssessmentService
from src.config import get_settings, load_provider_keys
from src.credentials import PROVIDER_PRIORITY, configured_credentials
from src.knowledge_base import InMemoryInsightStore
from src.llm_client import AIClient
from src.llm_errors import AIServiceError, ConfigurationError
from src.model_routing import model_tiers
from src.models import Answer, SessionType
from src.observability import metrics as obs_metrics
from src.prompts.schemas import SCHEMAS
from src.prompts.templates import role_instruction

_CUSTOM_THEME = Theme({
    "log.info":        "dim white",
    "log.warning":     "bold #f59e0b",
    "log.error":       "bold #dc2626",
    "primary":         "#ea580c",
    "risk.high":       "#dc2626",
    "risk.medium":     "#f59e0b",
})

console = Console(theme=_CUSTOM_THEME, highlight=False, stderr=True)
out = Console(theme=_CUSTOM_THEME, highlight=False)


class _RichStructlogRenderer:
    """Custom structlog processor that renders log lines via Rich."""

    _SKIP_KEYS = frozenset({"event", "level", "_record"})

    def __call__(self, logger_: object, method: str, event_dict: dict) -> str:  # noqa: ARG002
        event = event_dict.get("event", "")
        level = event_dict.get("level", "info").lower()

        # ── Model fallback highlight ─────────────────────────────────────────
        if event == "llm_fallback_triggered":
            console.print(
                f"  [bold #f59e0b]╔══ MODEL FALLBACK ══╗[/bold #f59e0b]  "
                f"[#64748b]{event_dict.get('primary_model', '?')}[/#64748b] [bold #ea580c]→[/bold #ea580c] "
                f"[bold #0ea5e9]{event_dict.get('fallback_model', '?')}[/bold #0ea5e9]  "
                f"[#64748b]task={event_dict.get('task', '')}[/#64748b]"
            )
            raise structlog.DropEvent()

        kv_parts = []
        for k, v in event_dict.items():
            if k in self._SKIP_KEYS:
                continue
            vs = str(v)
            if len(vs) > 120:
                vs = vs[:117] + "…"
            kv_parts.append(f"[#64748b]{k}[/#64748b]=[#94a3b8]{vs}[/#94a3b8]")
        kv_str = "  ".join(kv_parts)

        if level == "warning":
            prefix, ev_fmt = "[bold #f59e0b]⚠[/bold #f59e0b]", f"[bold #f59e0b]{event}[/bold #f59e0b]"
        elif level in ("error", "critical"):
            prefix, ev_fmt = "[bold #dc2626]✗[/bold #dc2626]", f"[bold #dc2626]{event}[/bold #dc2626]"
        elif level == "debug":
            prefix, ev_fmt = "[#64748b]·[/#64748b]", f"[#64748b]{event}[/#64748b]"
        else:
            prefix, ev_fmt = "[#ea580c]▪[/#ea580c]", f"[bold #e2e8f0]{event}[/bold #e2e8f0]"

        console.print(f"  {prefix} {ev_fmt}  {kv_str}")
        raise structlog.DropEvent()


def configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            _RichStructlogRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level if isinstance(level, int) else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


def show_providers() -> int:
    """Print credential slots, the active provider and each configured provider's model ladder."""
    keys = load_provider_keys()
    credentials = configured_credentials(keys)

    table = Table(title="Credential Slots", border_style="#64748b", title_style="bold #ea580c")
    table.add_column("Provider")
    table.add_column("Slot")
    table.add_column("Status")
    for provider, attr in PROVIDER_PRIORITY:
        value = (getattr(keys, attr) or "").strip()
        table.add_row(provider.value, attr.upper(), f"set ...{value[-4:]}" if value else "[#64748b]unset[/#64748b]")
    generic = (keys.generic_api_key or "").strip()
    table.add_row("(inferred)", "API_KEY", f"set ...{generic[-4:]}" if generic else "[#64748b]unset[/#64748b]")
    out.print(table)

    if not credentials:
        out.print("[bold #dc2626]No API key configured.[/bold #dc2626] Set API_KEY or a provider-specific key.")
        return 2

    ladder = Table(title="Fallback Ladder", border_style="#64748b", title_style="#94a3b8")
    ladder.add_column("#", justify="right")
    ladder.add_column("Provider")
    ladder.add_column("Models")
    for idx, cred in enumerate(credentials):
        marker = " [#ea580c](active)[/#ea580c]" if idx == 0 else ""
        ladder.add_row(str(idx + 1), f"{cred.provider.value}{marker}", " → ".join(model_tiers(cred.provider)))
    out.print(ladder)
    return 0


async def run_generate(schema_name: str, prompt: str, session_type: str) -> int:
    client = AIClient()
    result = await client.generate(
        prompt, SCHEMAS[schema_name], role_instruction(session_type), task=f"cli_{schema_name}"
    )
    out.print_json(json.dumps(result))
    return 0


async def run_assessment(session_type: str, answers_path: Path) -> int:
    raw = json.loads(answers_path.read_text(encoding="utf-8"))
    answers = [Answer.model_validate(item) for item in raw]
    service = AssessmentService(AIClient(), InMemoryInsightStore())
    result = await service.analyze_answers(answers, session_type)

    risk = result.risk_assessment
    style = "risk.high" if risk.is_concern else "primary"
    out.print(
        Panel(
            result.archetype_description or "(no description)",
            title=f"[{style}]{result.archetype}[/{style}]",
            border_style="#ea580c",
        )
    )
    table = Table(title="Traits", border_style="#64748b", title_style="#94a3b8")
    table.add_column("Trait")
    table.add_column("Score", justify="right")
    for score in result.radar_scores():
        table.add_row(score.trait, f"{score.score:.0f}")
    out.print(table)
    out.print(f"Risk: [{style}]{risk.level.value}[/{style}]  flags: {', '.join(risk.flags) or 'none'}")
    for path in result.career_path_suggestions:
        out.print(f"  • [bold]{path.title}[/bold] — {path.strategic_fit}")
    return 0


def main() -> None:
    settings = get_settings()
    configure_logging(settings.observability.log_level)
    obs_metrics.start_server(settings.observability.metrics_port)

    parser = argparse.ArgumentParser(description="MindPath assessment AI client")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("providers", help="Show configured credentials and model ladders")

    gen = sub.add_parser("generate", help="Run one schema-constrained generation")
    gen.add_argument("--schema", choices=sorted(SCHEMAS), required=True, help="Output schema name")
    gen.add_argument("--prompt", required=True, help="User prompt")
    gen.add_argument(
        "--session-type",
        default=SessionType.SCHOOL.value,
        choices=[s.value for s in SessionType],
        help="Persona used as the system instruction",
    )

    assess = sub.add_parser("assess", help="Run the final analysis over a JSON answers file")
    assess.add_argument("--answers", type=Path, required=True, help="JSON list of {questionText, userResponse}")
    assess.add_argument(
        "--session-type",
        default=SessionType.SCHOOL.value,
        choices=[s.value for s in SessionType],
    )

    args = parser.parse_args()
    try:
        if args.command == "providers":
            code = show_providers()
        elif args.command == "generate":
            code = asyncio.run(run_generate(args.schema, args.prompt, args.session_type))
        elif args.command == "assess":
            code = asyncio.run(run_assessment(args.session_type, args.answers))
        else:
            parser.print_help()
            code = 0
    except ConfigurationError as e:
        console.print(f"[log.error]Configuration error:[/log.error] {e}")
        code = 2
    except AIServiceError as e:
        console.print(f"[log.error]AI service error ({e.reason.value}):[/log.error] {e}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
