"""ABI fragments for the ControlledToken contract."""


def _fn(name, inputs=(), outputs=(), mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": arg, "type": typ, "internalType": typ} for arg, typ in inputs],
        "outputs": [{"name": "", "type": typ, "internalType": typ} for typ in outputs],
        "stateMutability": mutability,
    }


ControlledToken_abi = [
    # ERC-20 views
    _fn("name", outputs=["string"], mutability="view"),
    _fn("symbol", outputs=["string"], mutability="view"),
    _fn("decimals", outputs=["uint8"], mutability="view"),
    _fn("totalSupply", outputs=["uint256"], mutability="view"),
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn("tradingEnabled", outputs=["bool"], mutability="view"),
    # ERC-20 writes
    _fn("transfer", [("to", "address"), ("value", "uint256")], ["bool"]),
    # Admin
    _fn("setTradingEnabled", [("enabled", "bool")]),
    _fn("setWhitelist", [("account", "address"), ("allowed", "bool")]),
    _fn("freeze", [("account", "address"), ("duration", "uint256")]),
    _fn("unfreeze", [("account", "address")]),
    # Vesting
    _fn(
        "createVesting",
        [
            ("beneficiary", "address"),
            ("amount", "uint256"),
            ("start", "uint64"),
            ("cliff", "uint64"),
            ("duration", "uint64"),
        ],
    ),
    _fn("claimVested"),
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True, "internalType": "address"},
            {"name": "to", "type": "address", "indexed": True, "internalType": "address"},
            {"name": "value", "type": "uint256", "indexed": False, "internalType": "uint256"},
        ],
    },
]
