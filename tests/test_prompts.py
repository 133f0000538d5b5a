from unittest.mock import patch

from eggpanel.client import PanelClient
from eggpanel.flash import FlashStore
from eggpanel.form import VariableDraft, VariableForm
from eggpanel.prompts import prompt_variable_fields, run_variable_editor


@patch("eggpanel.prompts.Confirm.ask", return_value=True)
@patch("eggpanel.prompts.Prompt.ask", side_effect=lambda label, default="", **kw: default)
def test_prompt_variable_fields_suggests_env_name(mock_prompt, mock_confirm):
    draft = VariableDraft(name="Max Players")
    fields = prompt_variable_fields(draft)
    assert fields["env_variable"] == "MAX_PLAYERS"
    assert fields["rules"] == "required|string"
    assert fields["user_viewable"] is True


@patch("eggpanel.prompts.Confirm.ask", return_value=True)
@patch("eggpanel.prompts.Prompt.ask")
def test_editor_deletes_and_quits(mock_prompt, mock_confirm, client):
    mock_prompt.side_effect = ["delete", "2", "quit"]
    form = VariableForm(PanelClient(token="admin", http=client), 1, FlashStore())
    assert run_variable_editor(form) is True
    assert [v.id for v in form.cache.variables] == [3, 7]


@patch("eggpanel.prompts.Confirm.ask", return_value=False)
@patch("eggpanel.prompts.Prompt.ask")
def test_editor_add_and_save(mock_prompt, mock_confirm, client):
    mock_prompt.side_effect = [
        "add",
        "Max Players",
        "",
        "MAX_PLAYERS",
        "20",
        "required|integer",
        "save",
        "quit",
    ]
    form = VariableForm(PanelClient(token="admin", http=client), 1, FlashStore())
    assert run_variable_editor(form) is True
    assert [v.env_variable for v in form.cache.variables][-1] == "MAX_PLAYERS"
    assert form.dirty is False


def test_editor_reports_load_failure(client):
    form = VariableForm(PanelClient(token="nothing", http=client), 404, FlashStore())
    assert run_variable_editor(form) is False
