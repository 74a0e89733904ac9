"""Tests for the spendguard CLI."""

from spendguard.cli.main import cli


def run(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])


def test_policy_show_defaults(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "policy", "show", "kid")

    assert result.exit_code == 0
    assert "Approval threshold:   $10.00" in result.output
    assert "Request expiration:   72h" in result.output


def test_policy_set(cli_runner, temp_db):
    result = run(
        cli_runner, temp_db,
        "policy", "set", "kid", "--threshold", "15", "--max-purchase", "$100", "--family", "fam-1",
    )

    assert result.exit_code == 0
    assert "Approval threshold:   $15.00" in result.output
    assert "Max single purchase:  $100.00" in result.output
    assert "Family:               fam-1" in result.output


def test_policy_set_invalid_amount(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "policy", "set", "kid", "--threshold", "lots")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_check_and_spend(cli_runner, temp_db):
    assert run(cli_runner, temp_db, "balance", "set", "kid", "50").exit_code == 0

    result = run(cli_runner, temp_db, "check", "kid", "5")
    assert result.exit_code == 0
    assert "Allowed" in result.output

    result = run(cli_runner, temp_db, "check", "kid", "15")
    assert "Allowed with parent approval" in result.output

    result = run(cli_runner, temp_db, "spend", "kid", "5", "--description", "Snack")
    assert result.exit_code == 0
    assert "Spent $5.00" in result.output
    assert "New balance: $45.00" in result.output

    result = run(cli_runner, temp_db, "spend", "kid", "15", "--description", "Game")
    assert result.exit_code == 1
    assert "needs parent approval" in result.output


def test_spend_with_insufficient_funds(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "spend", "kid", "5", "--description", "Snack")

    assert result.exit_code == 1
    assert "Insufficient funds" in result.output


def test_blocked_category(cli_runner, temp_db):
    result = run(
        cli_runner, temp_db,
        "rule", "set", "kid", "candy", "--restriction", "blocked", "--reason", "No candy purchases",
    )
    assert result.exit_code == 0

    result = run(cli_runner, temp_db, "check", "kid", "1", "--category", "candy")
    assert "Blocked: No candy purchases" in result.output

    result = run(cli_runner, temp_db, "rule", "remove", "kid", "candy")
    assert result.exit_code == 0
    result = run(cli_runner, temp_db, "rule", "remove", "kid", "candy")
    assert result.exit_code == 1


def test_request_workflow(cli_runner, temp_db):
    run(cli_runner, temp_db, "balance", "set", "kid", "50")
    run(cli_runner, temp_db, "limit", "set", "kid", "weekly", "40")

    result = run(cli_runner, temp_db, "request", "create", "kid", "15", "--description", "Video game")
    assert result.exit_code == 0
    assert "Created request 1 for $15.00" in result.output

    result = run(cli_runner, temp_db, "limit", "status", "kid")
    assert "pending $    15.00" in result.output

    result = run(cli_runner, temp_db, "request", "approve", "1", "--by", "mom", "--comment", "OK")
    assert result.exit_code == 0
    assert "Request 1 approved" in result.output

    result = run(cli_runner, temp_db, "request", "show", "1")
    assert "Status:      approved" in result.output
    assert "Answered by: mom" in result.output

    result = run(cli_runner, temp_db, "balance", "show", "kid")
    assert "$35.00" in result.output

    result = run(cli_runner, temp_db, "request", "deny", "1")
    assert result.exit_code == 1
    assert "no longer pending" in result.output


def test_request_cancel_and_list(cli_runner, temp_db):
    run(cli_runner, temp_db, "request", "create", "kid", "20", "--description", "Shoes")
    run(cli_runner, temp_db, "request", "create", "kid", "30", "--description", "Jacket")

    result = run(cli_runner, temp_db, "request", "cancel", "1", "--child", "sibling")
    assert result.exit_code == 1

    result = run(cli_runner, temp_db, "request", "cancel", "1", "--child", "kid")
    assert result.exit_code == 0

    result = run(cli_runner, temp_db, "request", "list", "--status", "pending")
    assert "Jacket" in result.output
    assert "Shoes" not in result.output


def test_request_for_small_amount_rejected(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "request", "create", "kid", "3", "--description", "Gum")

    assert result.exit_code == 1
    assert "does not require approval" in result.output


def test_limit_commands(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "limit", "status", "kid")
    assert "No spending limits configured" in result.output

    result = run(cli_runner, temp_db, "limit", "set", "kid", "daily", "10", "--committed-only")
    assert result.exit_code == 0
    assert "Set daily limit of $10.00" in result.output

    result = run(cli_runner, temp_db, "limit", "history", "kid")
    assert "No limit history found." in result.output

    run(cli_runner, temp_db, "limit", "status", "kid")
    result = run(cli_runner, temp_db, "limit", "history", "kid", "--period", "daily")
    assert "spent $     0.00 of $10.00" in result.output

    assert run(cli_runner, temp_db, "limit", "remove", "kid", "daily").exit_code == 0
    assert run(cli_runner, temp_db, "limit", "remove", "kid", "daily").exit_code == 1


def test_pause_and_trust(cli_runner, temp_db):
    assert run(cli_runner, temp_db, "policy", "pause", "kid", "--reason", "Grounded").exit_code == 0
    result = run(cli_runner, temp_db, "check", "kid", "1")
    assert "Blocked: Grounded" in result.output

    run(cli_runner, temp_db, "policy", "resume", "kid")
    run(cli_runner, temp_db, "policy", "trust", "kid", "books")
    result = run(cli_runner, temp_db, "policy", "show", "kid")
    assert "Trusted categories:   books" in result.output

    result = run(cli_runner, temp_db, "policy", "untrust", "kid", "music")
    assert result.exit_code == 1


def test_sweep_once(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "sweep")

    assert result.exit_code == 0
    assert "Expired 0 request(s)" in result.output
