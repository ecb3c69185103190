"""ABI fragments for the contracts the workload talks to.

Only the functions and events actually called are listed; the full artifacts
live with the Solidity project.
"""

ERC20_ABI = [
    {"inputs": [{"name": "owner", "type": "address"}], "name": "balanceOf", "outputs": [
        {"type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "owner", "type": "address"}, {"name": "spender", "type": "address"}],
        "name": "allowance", "outputs": [{"type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "spender", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "name": "approve", "outputs": [{"type": "bool"}], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [], "name": "symbol", "outputs": [{"type": "string"}],
        "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "decimals", "outputs": [{"type": "uint8"}],
        "stateMutability": "view", "type": "function"},
]

# Test tokens deployed next to the fund expose an owner-only mint
MINTABLE_ERC20_ABI = ERC20_ABI + [
    {"inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "name": "mint", "outputs": [{"type": "bool"}], "stateMutability": "nonpayable", "type": "function"},
]

FACTORY_ABI = [
    {"inputs": [
        {"name": "_name", "type": "string"},
        {"name": "_depositFee", "type": "uint256"},
        {"name": "_withdrawalFee", "type": "uint256"},
        {"name": "_managementFee", "type": "uint256"},
        {"name": "_performanceFee", "type": "uint256"},
    ], "name": "createFund", "outputs": [{"type": "address"}], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [], "name": "getFundCount", "outputs": [{"type": "uint256"}],
        "stateMutability": "view", "type": "function"},
    {"anonymous": False, "name": "FundCreated", "type": "event", "inputs": [
        {"indexed": True, "name": "fund", "type": "address"},
        {"indexed": True, "name": "creator", "type": "address"},
        {"indexed": False, "name": "name", "type": "string"},
        {"indexed": False, "name": "timestamp", "type": "uint256"},
    ]},
]

FUND_ABI = [
    {"inputs": [], "name": "owner", "outputs": [{"type": "address"}],
        "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "account", "type": "address"}], "name": "balanceOf", "outputs": [
        {"type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "getAllocations", "outputs": [{"type": "tuple[]", "components": [
        {"name": "token", "type": "address"},
        {"name": "percentage", "type": "uint256"},
    ]}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "getDepositFeeBalance", "outputs": [{"type": "uint256"}],
        "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "getWithdrawalFeeBalance", "outputs": [{"type": "uint256"}],
        "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "token", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "name": "deposit", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"name": "shares", "type": "uint256"}],
        "name": "withdraw", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"name": "tokenAddress", "type": "address"}, {"name": "_allocation", "type": "uint256"}],
        "name": "setAllocation", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "name": "withdrawDepositFees", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"name": "newOwner", "type": "address"}],
        "name": "transferOwnership", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
]
