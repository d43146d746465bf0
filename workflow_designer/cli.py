"""
Command Line Interface for the Workflow Designer engine

Subcommands operate on JSON files and write JSON to stdout (or --output):
- project    workflow definition -> arranged canvas graph
- arrange    canvas graph -> snake-arranged canvas graph
- reduce     canvas graph -> ordered task list
- scenarios  workflow definition -> ordered test scenarios
- init-config  write the default user config file

Errors are reported as machine-readable JSON on stderr with a non-zero exit.
"""

from __future__ import annotations
import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from .config import init_default_config, layout_params, merged_config
from .designer import WorkflowDesigner
from .engine import LayoutEngine, GraphToTreeReducer, validate_graph
from .engine.reducer import prefer_local, prefer_original, prefer_richer_original
from .exceptions import DesignerError, GraphValidationError, TaskDefinitionError
from .models import WorkflowDefinition, WorkflowGraph
from .runtime import LLMRuntime, auto_detect_runtime, create_openai_runtime

POLICIES = {
    "richer": prefer_richer_original,
    "local": prefer_local,
    "original": prefer_original,
}


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr
    )

    # Reduce noise from some libraries
    logging.getLogger('openai').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""

    parser = argparse.ArgumentParser(
        prog="workflow-designer",
        description="Workflow Designer - sync workflow definitions with canvas graphs and generate test scenarios",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Project a definition onto an arranged canvas graph
  workflow-designer project order_flow.json --output graph.json

  # Rebuild the task list from an edited graph
  workflow-designer reduce graph.json --original order_flow.json

  # Policy-based scenarios
  workflow-designer scenarios order_flow.json --input sample_input.json

  # LLM scenarios from a local OpenAI-compatible server
  workflow-designer scenarios order_flow.json --llm --local-server http://localhost:8080/v1
        """
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')
    parser.add_argument('--config', type=Path, help='Project config file (default: ./workflow-designer.toml)')
    parser.add_argument('--output', '-o', type=Path, help='Write JSON result to this file instead of stdout')

    subparsers = parser.add_subparsers(dest='command', required=True)

    project_parser = subparsers.add_parser('project', help='Project a workflow definition onto a canvas graph')
    project_parser.add_argument('workflow', type=Path, help='Workflow definition JSON (object or task list)')

    arrange_parser = subparsers.add_parser('arrange', help='Snake-arrange a canvas graph')
    arrange_parser.add_argument('graph', type=Path, help='Canvas graph JSON with "nodes" and "edges"')

    reduce_parser = subparsers.add_parser('reduce', help='Rebuild the task list from a canvas graph')
    reduce_parser.add_argument('graph', type=Path, help='Canvas graph JSON with "nodes" and "edges"')
    reduce_parser.add_argument('--original', type=Path, help='Workflow definition the graph was loaded from')
    reduce_parser.add_argument(
        '--prefer',
        choices=sorted(POLICIES),
        default='richer',
        help='Which definition wins for a task present in both (default: richer)'
    )

    scenarios_parser = subparsers.add_parser('scenarios', help='Generate test scenarios for a workflow')
    scenarios_parser.add_argument('workflow', type=Path, help='Workflow definition JSON (object or task list)')
    scenarios_parser.add_argument('--input', type=Path, help='Sample workflow input JSON; scenarios get derived inputs')
    scenarios_parser.add_argument('--context', help='Additional business context for the LLM prompt')

    runtime_group = scenarios_parser.add_argument_group('LLM runtime options')
    runtime_group.add_argument('--llm', action='store_true', help='Generate scenarios with an LLM runtime')
    runtime_group.add_argument('--local-server', help='OpenAI-compatible server URL (default from config)')
    runtime_group.add_argument('--openai-api-key', help='OpenAI API key for hosted inference')

    init_parser = subparsers.add_parser('init-config', help='Write the default user config file')
    init_parser.add_argument('--force', action='store_true', help='Overwrite an existing config file')

    return parser


def read_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with path.open('r', encoding='utf-8') as f:
        return json.load(f)


def load_definition(path: Path) -> WorkflowDefinition:
    """Read a workflow definition; a bare task list is named after the file."""
    data = read_json(path)
    if isinstance(data, list):
        data = {"name": path.stem, "tasks": data}
    if not isinstance(data, dict):
        raise TaskDefinitionError(f"Workflow file must hold an object or a task list: {path}")
    return WorkflowDefinition.model_validate(data)


def load_graph(path: Path) -> WorkflowGraph:
    data = read_json(path)
    if not isinstance(data, dict) or "nodes" not in data:
        raise ValueError(f"Graph file must be an object with a 'nodes' list: {path}")
    return WorkflowGraph.model_validate(data)


def create_runtime(args: argparse.Namespace, cfg: Dict[str, Any]) -> LLMRuntime:
    """Create LLM runtime based on command line arguments and config."""
    if args.openai_api_key:
        return create_openai_runtime(args.openai_api_key)

    api_key = cfg["llm_api_key"] if cfg["llm_api_key"] != "no-key" else None
    return auto_detect_runtime(
        local_url=args.local_server or cfg["llm_base_url"],
        api_key=api_key,
        local_model=cfg["llm_model"]
    )


def print_progress(message: str, current: int, total: int) -> None:
    print(f"[{current}/{total}] {message}", file=sys.stderr)


def run_command(args: argparse.Namespace, cfg: Dict[str, Any]) -> Any:
    """Execute one subcommand and return its JSON-ready result."""
    params = layout_params(cfg)

    if args.command == 'project':
        designer = WorkflowDesigner(params)
        return designer.load(load_definition(args.workflow)).to_wire()

    if args.command == 'arrange':
        return LayoutEngine(params).arrange(load_graph(args.graph).nodes).to_wire()

    if args.command == 'reduce':
        originals: Optional[List[Dict[str, Any]]] = None
        if args.original:
            originals = load_definition(args.original).tasks
        graph = load_graph(args.graph)
        validate_graph(graph.nodes, graph.edges)
        return GraphToTreeReducer(POLICIES[args.prefer]).process(graph.nodes, originals)

    if args.command == 'scenarios':
        runtime = create_runtime(args, cfg) if args.llm else None
        designer = WorkflowDesigner(params, runtime=runtime)
        designer.load(load_definition(args.workflow))
        input_json = read_json(args.input) if args.input else None
        scenarios = asyncio.run(designer.generate_scenarios(
            input_json=input_json,
            additional_context=args.context,
            on_progress=print_progress,
            max_retries=cfg["max_retries"],
            temperature=cfg["temperature"],
            max_tokens=cfg["max_tokens"],
        ))
        return [scenario.to_wire() for scenario in scenarios]

    if args.command == 'init-config':
        return {"config_path": str(init_default_config(args.force))}

    raise ValueError(f"Unknown command: {args.command}")


def write_result(result: Any, output: Optional[Path]) -> None:
    text = json.dumps(result, indent=2)
    if output:
        output.write_text(text + "\n", encoding='utf-8')
        print(f"✅ Wrote {output}")
    else:
        print(text)


def print_error_summary(error: Exception) -> None:
    """Print machine-readable error summary to stderr."""

    if isinstance(error, GraphValidationError):
        error_report = {
            "error_type": "GRAPH_VALIDATION_FAILURE",
            "violated_rules": error.violated_rules,
            "offending_ids": error.offending_ids,
            "details": error.details,
            "message": str(error)
        }
    else:
        error_report = {
            "error_type": type(error).__name__,
            "message": str(error),
            "details": getattr(error, 'details', None)
        }

    print(json.dumps(error_report, indent=2), file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""

    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        cfg = merged_config(args.config)
        result = run_command(args, cfg)
        write_result(result, args.output)
        return 0

    except GraphValidationError as e:
        logger.error(f"Graph validation failed: {e}")
        print_error_summary(e)
        return 1

    except (DesignerError, ValueError, FileNotFoundError, KeyError) as e:
        logger.error(f"Input validation failed: {e}")
        print_error_summary(e)
        return 2

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130  # Standard Unix exit code for SIGINT

    except Exception as e:
        logger.exception("Unexpected error occurred")
        print_error_summary(e)
        return 3


if __name__ == '__main__':
    sys.exit(main())
