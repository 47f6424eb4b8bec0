"""
CLI Tests.

main() is driven with an injected pipeline; nothing touches the network.
"""

import json

from conftest import OTHER, TARGET, TARGET_LOWER, FakeTransfersClient, make_transfer
from evm_tx_history.cli import EXIT_OK, EXIT_REQUEST_ERROR, create_parser, main, parse_categories
from evm_tx_history.models import TransferBatch


class TestParser:
    """Tests for argument parsing."""

    def test_positional_and_options(self):
        args = create_parser().parse_args([
            "8453", TARGET, "--page-size", "20", "--page-key", "abc", "--categories", "erc20",
        ])

        assert args.chain_id == "8453"
        assert args.address == TARGET
        assert args.page_size == 20
        assert args.page_key == "abc"
        assert args.log_level == "WARNING"

    def test_parse_categories(self):
        assert parse_categories(None) is None
        assert parse_categories("external, erc20,,") == ["external", "erc20"]


class TestMain:
    """Tests for main()."""

    def test_prints_page_json(self, make_pipeline, capsys):
        client = FakeTransfersClient(
            inbound=TransferBatch((make_transfer("0x01"),), page_key="cursor-1"),
        )

        code = main(["1", TARGET, "--page-size", "5"], pipeline=make_pipeline(client))

        assert code == EXIT_OK
        output = json.loads(capsys.readouterr().out)
        assert output["nextPageKey"] == "cursor-1"
        assert output["items"][0]["hash"] == "0x01"
        assert output["items"][0]["from"] == OTHER
        assert output["items"][0]["to"] == TARGET_LOWER
        assert client.calls[0].max_count == 5

    def test_invalid_chain_id(self, make_pipeline, capsys):
        client = FakeTransfersClient()

        code = main(["mainnet", TARGET], pipeline=make_pipeline(client))

        assert code == EXIT_REQUEST_ERROR
        assert "Invalid chainId" in capsys.readouterr().err
        assert client.calls == []

    def test_unsupported_chain(self, make_pipeline, capsys):
        code = main(["999", TARGET], pipeline=make_pipeline(FakeTransfersClient()))

        assert code == EXIT_REQUEST_ERROR
        assert "Unsupported chainId: 999" in capsys.readouterr().err

    def test_categories_forwarded(self, make_pipeline):
        client = FakeTransfersClient()

        code = main(
            ["1", TARGET, "--categories", "erc721,erc1155"],
            pipeline=make_pipeline(client),
        )

        assert code == EXIT_OK
        assert client.calls[0].categories == ("erc721", "erc1155")
