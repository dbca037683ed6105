"""ContractUtility: Web3 initialization and contract ABI loading."""

import json
import os
from pathlib import Path

from web3 import Web3

# Public RPC endpoints per network; RPC_URL overrides these.
NETWORKS: dict[str, str] = {
    "mainnet": "https://ethereum-rpc.publicnode.com",
    "localhost": "http://localhost:8545",
}


class ContractUtility:
    """Utility for Web3 connection and contract ABI loading.

    :ivar network: Network RPC URL.
    :ivar w3: Configured read-only Web3 instance.
    """

    def __init__(self, network_name: str, rpc_url: str | None = None) -> None:
        """Initialize the contract utility.

        :param network_name: Name of the network to connect to, or an RPC URL.
        :param rpc_url: Optional explicit RPC URL (takes precedence).
        """
        # RPC_URL env var overrides the default for the network
        self.network = (
            rpc_url
            or os.environ.get("RPC_URL")
            or NETWORKS.get(network_name, network_name)
        )
        self.w3 = Web3(Web3.HTTPProvider(self.network))

    @staticmethod
    def get_abi(contract_name: str) -> list:
        """Fetch the ABI of a contract from the packaged abi folder.

        :param contract_name: Name of the contract (e.g., "UniswapV3Pool").
        :returns: Contract ABI.
        """
        abi_path = (Path(__file__).parent / "abi" / f"{contract_name}.json").resolve()

        with open(abi_path, "r") as file:
            contract_data = json.load(file)

        return contract_data["abi"]
