"""ABI of the asset registry contract."""

AssetRegistry_abi = [
    {
        "type": "function",
        "name": "getAssetsOf",
        "stateMutability": "view",
        "inputs": [{"name": "owner", "type": "address"}],
        "outputs": [{"name": "", "type": "bytes32[]"}],
    },
    {
        "type": "function",
        "name": "getAsset",
        "stateMutability": "view",
        "inputs": [{"name": "idHash", "type": "bytes32"}],
        "outputs": [
            {"name": "name", "type": "string"},
            {"name": "idHash", "type": "bytes32"},
            {"name": "cost", "type": "uint256"},
            {"name": "owner", "type": "address"},
            {"name": "registeredAt", "type": "uint256"},
            {"name": "exists", "type": "bool"},
        ],
    },
    {
        "type": "function",
        "name": "registerAsset",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "name", "type": "string"},
            {"name": "cost", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "transferAsset",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "idHash", "type": "bytes32"},
            {"name": "newOwner", "type": "address"},
        ],
        "outputs": [],
    },
    {
        "type": "event",
        "name": "AssetRegistered",
        "anonymous": False,
        "inputs": [
            {"name": "idHash", "type": "bytes32", "indexed": True},
            {"name": "owner", "type": "address", "indexed": True},
            {"name": "name", "type": "string", "indexed": False},
            {"name": "cost", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "AssetTransferred",
        "anonymous": False,
        "inputs": [
            {"name": "idHash", "type": "bytes32", "indexed": True},
            {"name": "previousOwner", "type": "address", "indexed": True},
            {"name": "newOwner", "type": "address", "indexed": True},
        ],
    },
]
