"""Console reporting of compiler diagnostics and function issues."""
from typing import Dict, List

import click
from colorama import Fore, Style

from functions_sdk.checker.diagnostics import Diagnostic


def print_header(title: str):
    """Print a section header."""
    click.echo(f"\n{Fore.CYAN}{'━' * 45}")
    click.echo(f"{Fore.CYAN}{title}")
    click.echo(f"{Fore.CYAN}{'━' * 45}{Style.RESET_ALL}\n")


def print_compiler_diagnostics(diagnostics: List[Diagnostic]):
    """Print compiler diagnostics, one per line, to stderr."""
    if not diagnostics:
        return

    click.echo(f"{Fore.RED}{len(diagnostics)} compiler error(s):{Style.RESET_ALL}", err=True)
    for diagnostic in diagnostics:
        click.echo(f"{Fore.RED}  {diagnostic}{Style.RESET_ALL}", err=True)


def print_function_issues(function_issues: Dict[str, List[str]]):
    """Print the issues found for each function."""
    if not function_issues:
        return

    click.echo(f"{Fore.YELLOW}Issues found in {len(function_issues)} function(s):{Style.RESET_ALL}", err=True)
    for function_name, issues in function_issues.items():
        click.echo(f"{Fore.YELLOW}  {function_name}:{Style.RESET_ALL}", err=True)
        for issue in issues:
            click.echo(f"    • {issue}", err=True)


def print_summary(function_count: int, object_type_count: int, broken_functions: List[str]):
    """Print a one-block derivation summary."""
    print_header("Schema Derivation")
    click.echo(f"{Fore.GREEN}✅ {function_count} function(s), {object_type_count} object type(s)")
    if broken_functions:
        click.echo(f"{Fore.RED}❌ {len(broken_functions)} broken function(s): {', '.join(broken_functions)}")
