import pytest

from conftest import days_ago
from scripts import export_airdrop
from treasury import TreasuryError


@pytest.fixture()
def editors(make_user, make_page, add_revision):
    alice = make_user("alice", created_at=days_ago(1))
    bob = make_user("bob", created_at=days_ago(1))
    make_page(alice)
    make_page(alice)
    make_page(alice)
    make_page(bob)
    return alice, bob


def test_prints_payable_csv_for_given_balance(editors, capsys):
    alice, bob = editors
    assert export_airdrop.main(["--balance", "100"]) == 0
    out, err = capsys.readouterr()
    assert out.rstrip("\n").split("\n") == ["Address,Amount", f"{alice.wallet_address},75", f"{bob.wallet_address},25"]
    assert "2 payable of 2 editors" in err


def test_dust_rows_left_out(editors, capsys):
    alice, _ = editors
    assert export_airdrop.main(["--balance", "2"]) == 0
    out, _ = capsys.readouterr()
    assert out.rstrip("\n").split("\n") == ["Address,Amount", f"{alice.wallet_address},1.5"]


def test_live_balance_failure_exits_nonzero(app, monkeypatch, capsys):
    def _boom():
        raise TreasuryError("TREASURY_ADDRESS not configured")

    monkeypatch.setattr(export_airdrop, "get_treasury_balance", _boom)
    assert export_airdrop.main([]) == 1
    out, err = capsys.readouterr()
    assert out == ""
    assert "TREASURY_ADDRESS not configured" in err


def test_invalid_balance_is_usage_error(app):
    with pytest.raises(SystemExit):
        export_airdrop.main(["--balance", "lots"])
