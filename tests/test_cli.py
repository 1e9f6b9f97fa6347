import pytest

from bridgeflow import cli


def test_parser_commands():
    parser = cli.build_parser()

    args = parser.parse_args(["--network", "mainnet", "status", "ord-1", "--direction", "withdraw", "--watch"])
    assert (args.command, args.network, args.order_id, args.direction, args.watch) == (
        "status", "mainnet", "ord-1", "withdraw", True
    )

    args = parser.parse_args(["quote", "50000"])
    assert args.amount == 50000
    assert args.network is None


def test_format_btc():
    assert cli.format_btc(150_000) == "0.00150000 BTC"


@pytest.mark.asyncio
async def test_relay_health_unconfigured(monkeypatch, capsys):
    monkeypatch.setattr(cli, "create_relay_client", lambda: None)

    await cli.cli_relay_health()

    assert "No relay configured" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_quote_rejects_non_positive_amount(capsys):
    with pytest.raises(SystemExit) as exc_info:
        await cli.main(["quote", "0"])

    assert exc_info.value.code == 2
    assert "positive" in capsys.readouterr().err
