from __future__ import annotations

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .flash import FlashStore
from .form import VariableDraft, VariableForm
from .util import normalize_env_var

console = Console()

ACTIONS = ["edit", "add", "delete", "save", "quit"]


def _print_variable_info(draft: VariableDraft) -> None:
    console.print(f"[bold]{draft.name or '(new variable)'}[/bold]")
    if draft.description:
        console.print(draft.description)
    if draft.env_variable:
        console.print(f"Env: [cyan]{draft.env_variable}[/cyan]")


def print_variables(form: VariableForm) -> None:
    if not form.drafts:
        console.print("[dim]No variables defined for this egg.[/dim]")
        return
    errors = form.errors
    table = Table(title=f"Egg {form.egg_id} variables")
    for column in ("#", "Name", "Env Variable", "Default", "Viewable", "Editable", "Rules"):
        table.add_column(column)
    for idx, draft in enumerate(form.drafts, start=1):
        marker = "" if draft.persisted else " [yellow](unsaved)[/yellow]"
        name = f"{draft.name}{marker}"
        if idx - 1 in errors:
            name = f"[red]{name}[/red]"
        table.add_row(
            str(idx),
            name,
            str(draft.env_variable or ""),
            str(draft.default_value or ""),
            "yes" if draft.user_viewable else "no",
            "yes" if draft.user_editable else "no",
            str(draft.rules or ""),
        )
    console.print(table)


def print_errors(form: VariableForm) -> None:
    for index, fields in form.errors.items():
        for field_name, message in fields.items():
            console.print(f"[red]Variable {index + 1}, {field_name}: {message}[/red]")


def print_flash(flash: FlashStore, key: str) -> None:
    for item in flash.messages(key):
        console.print(f"[red]{item.message}[/red]")
    flash.clear(key)


def prompt_index(form: VariableForm) -> int | None:
    if not form.drafts:
        console.print("[red]There are no variables to pick from.[/red]")
        return None
    while True:
        selection = Prompt.ask("Variable number", default="1")
        if not selection.isdigit():
            console.print("[red]Enter a number from the list.[/red]")
            continue
        idx = int(selection)
        if 1 <= idx <= len(form.drafts):
            return idx - 1
        console.print("[red]Selection out of range.[/red]")


def prompt_variable_fields(draft: VariableDraft) -> dict:
    _print_variable_info(draft)
    name = Prompt.ask("Name", default=draft.name or "")
    description = Prompt.ask("Description", default=draft.description or "")
    env_default = draft.env_variable or (normalize_env_var(name) if name.strip() else "")
    env_variable = Prompt.ask("Environment variable", default=env_default)
    default_value = Prompt.ask("Default value", default=draft.default_value or "")
    user_viewable = Confirm.ask("User viewable?", default=bool(draft.user_viewable))
    user_editable = Confirm.ask("User editable?", default=bool(draft.user_editable))
    rules = Prompt.ask("Validation rules", default=draft.rules or "required|string")
    return {
        "name": name.strip(),
        "description": description,
        "env_variable": env_variable.strip(),
        "default_value": default_value,
        "user_viewable": user_viewable,
        "user_editable": user_editable,
        "rules": rules.strip(),
    }


def confirm_delete(draft: VariableDraft) -> bool:
    console.print(
        f"Deleting [bold]{draft.name}[/bold] will delete it from every server using this egg."
    )
    return Confirm.ask("Yes, delete variable?", default=False)


def run_variable_editor(form: VariableForm) -> bool:
    """Drive ``form`` from the terminal. Returns False if the egg could not be loaded."""
    if form.load() is None:
        print_flash(form.flash, form.flash_key)
        return False

    while True:
        console.print("")
        print_variables(form)
        default = "save" if form.dirty else "quit"
        action = Prompt.ask("Action", choices=ACTIONS, default=default)

        if action == "edit":
            index = prompt_index(form)
            if index is not None:
                form.edit(index, **prompt_variable_fields(form.drafts[index]))
        elif action == "add":
            form.add()
            index = len(form.drafts) - 1
            form.edit(index, **prompt_variable_fields(form.drafts[index]))
        elif action == "delete":
            index = prompt_index(form)
            if index is None:
                continue
            draft = form.drafts[index]
            if not draft.persisted:
                form.discard(index)
                continue
            if form.delete(draft.id, lambda: confirm_delete(draft)):
                console.print(f"[green]Deleted {draft.name}.[/green]")
        elif action == "save":
            if not form.is_valid:
                print_errors(form)
                continue
            if form.submit():
                console.print("[green]Variables saved.[/green]")
        else:
            if form.dirty and not Confirm.ask("Discard unsaved changes?", default=False):
                continue
            return True

        print_flash(form.flash, form.flash_key)
