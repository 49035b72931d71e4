#!/usr/bin/env python3
"""
CLI interface for agent-builder workflows.

Provides commands for listing node types, validating and executing
workflow documents.
"""
import argparse
import logging
import sys
from pathlib import Path

from agent_builder.engine.context import Account, ExecutionContext
from agent_builder.engine.data import LogType, summarize
from agent_builder.engine.executor import WorkflowExecutor
from agent_builder.errors import WorkflowError
from agent_builder.nodes.registry import get_registry
from agent_builder.utils.common import print_section, save_json, truncate
from agent_builder.utils.config import get_config_manager
from agent_builder.workflows.serialization import WorkflowSerializer, validate_workflow

_LOG_MARKERS = {
    LogType.INFO: " ",
    LogType.SUCCESS: "✓",
    LogType.WARNING: "!",
    LogType.ERROR: "✗",
}


def _load(path_arg: str):
    workflow_path = Path(path_arg)
    if not workflow_path.exists():
        print(f"Error: Workflow file not found: {workflow_path}", file=sys.stderr)
        sys.exit(1)
    try:
        return workflow_path, WorkflowSerializer().load_workflow(workflow_path)
    except WorkflowError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def list_nodes(args):
    """List all available node types"""
    registry = get_registry()

    print("Available Node Types:")
    print("=" * 60)

    # Group by category
    categories = {}
    for info in registry.describe():
        categories.setdefault(info["category"], []).append(info)

    for category in sorted(categories.keys()):
        print(f"\n{category.upper()}:")
        for info in categories[category]:
            wallet = " [wallet]" if info["requires_wallet"] else ""
            print(f"  {info['type']:12} - {info['description']}{wallet}")


def validate_command(args):
    """Validate a workflow file"""
    workflow_path, document = _load(args.workflow)

    print(f"Validating workflow: {workflow_path.name}")
    print("-" * 60)

    allow_cycles = args.allow_cycles or get_config_manager().load().engine.allow_cycles
    errors = validate_workflow(document.nodes, document.edges, allow_cycles=allow_cycles)
    if errors:
        print("Validation Errors:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    print("✓ Workflow is valid")
    print(f"  Nodes: {len(document.nodes)}")
    print(f"  Edges: {len(document.edges)}")


def execute_command(args):
    """Execute a workflow from JSON file"""
    workflow_path, document = _load(args.workflow)

    if not document.nodes:
        print("Error: No nodes found in workflow", file=sys.stderr)
        sys.exit(1)

    print(f"Executing workflow: {workflow_path.name}")
    print(f"Nodes: {len(document.nodes)}, Edges: {len(document.edges)}")
    print("-" * 60)

    def show(message: str, log_type: LogType):
        print(f"  {_LOG_MARKERS[log_type]} {message}")

    account = Account(address=args.account) if args.account else None
    context = ExecutionContext(
        is_connected=args.connected or account is not None,
        account=account,
        on_log=show,
        config=get_config_manager().load(),
    )
    executor = WorkflowExecutor(allow_cycles=True if args.allow_cycles else None)
    results = executor.execute_workflow(document.nodes, document.edges, context)
    summary = summarize(results)

    print_section("Execution Results")
    print(f"Success: {summary.success}")
    print(f"Total Nodes: {summary.total}")
    print(f"Completed: {summary.completed}")
    print(f"Degraded: {summary.degraded}")
    print(f"Failed: {summary.failed}")

    for node_id, result in results.items():
        detail = result.error if result.error else truncate(result.result)
        print(f"  {node_id:20} {result.status.value:9} {detail}")

    if args.output:
        output_path = Path(args.output)
        save_json({
            **summary.to_dict(),
            "results": {node_id: result.to_dict() for node_id, result in results.items()},
            "logs": [entry.to_dict() for entry in executor.get_execution_log()],
        }, output_path)
        print(f"\nResults saved to: {output_path}")

    sys.exit(0 if summary.success else 1)


def main():
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Visual Agent Builder workflow engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s list-nodes
  %(prog)s validate workflow.json
  %(prog)s execute workflow.json --output results.json
  %(prog)s execute workflow.json --account 5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY
        """
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # List nodes command
    list_parser = subparsers.add_parser('list-nodes', help='List all available node types')
    list_parser.set_defaults(func=list_nodes)

    # Validate workflow command
    validate_parser = subparsers.add_parser('validate', help='Validate a workflow file')
    validate_parser.add_argument('workflow', help='Path to workflow JSON file')
    validate_parser.add_argument('--allow-cycles', action='store_true',
                                 help='Accept dependency cycles')
    validate_parser.set_defaults(func=validate_command)

    # Execute workflow command
    execute_parser = subparsers.add_parser('execute', help='Execute a workflow')
    execute_parser.add_argument('workflow', help='Path to workflow JSON file')
    execute_parser.add_argument('--connected', action='store_true',
                                help='Treat the wallet as connected')
    execute_parser.add_argument('--account', help='Wallet account address (implies --connected)')
    execute_parser.add_argument('--allow-cycles', action='store_true',
                                help='Run workflows containing dependency cycles')
    execute_parser.add_argument('--output', help='Save execution results to file')
    execute_parser.set_defaults(func=execute_command)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == '__main__':
    main()
