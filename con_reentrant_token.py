# con_reentrant_token.py
I = importlib

balances = Hash(default_value=decimal('0.0'))
metadata = Hash()

re_entry_owner = Variable()

# Re-entrancy specific state
re_entry_target_campaign_for_fund = Variable()
re_entry_fund_amount = Variable()
re_entry_target_campaign_for_claim = Variable()
re_entry_attempt_count = Variable()
re_entry_max_attempts = Variable()

@construct
def seed():
    re_entry_attempt_count.set(0)
    re_entry_max_attempts.set(1) # Only re-enter once
    re_entry_owner.set(ctx.caller)
    metadata['total_supply'] = decimal('0.0')

@export
def configure_re_entrancy_for_fund(campaign_name: str, amount: float):
    assert ctx.caller == re_entry_owner.get(), "Only owner can configure re-entrancy for fund."
    re_entry_target_campaign_for_fund.set(campaign_name)
    re_entry_fund_amount.set(amount)
    re_entry_attempt_count.set(0)

@export
def configure_re_entrancy_for_claim(campaign_name: str):
    assert ctx.caller == re_entry_owner.get(), "Only owner can configure re-entrancy for claim."
    re_entry_target_campaign_for_claim.set(campaign_name)
    re_entry_attempt_count.set(0)

# Lets this contract become a contributor of the campaign with its own tokens
@export
def execute_fund(campaign_name: str, amount: float):
    assert ctx.caller == re_entry_owner.get(), "Only owner can execute fund."
    balances[ctx.this, campaign_name] = amount
    campaign_contract = I.import_module(campaign_name)
    campaign_contract.fund(amount=amount)

@export
def execute_claim(campaign_name: str):
    assert ctx.caller == re_entry_owner.get(), "Only owner can execute claim."
    campaign_contract = I.import_module(campaign_name)
    return campaign_contract.claim()

@export
def mint(amount: float, to: str):
    assert ctx.caller == re_entry_owner.get(), "Only owner can mint."
    assert amount > 0, "Mint amount must be positive"
    balances[to] += amount
    metadata['total_supply'] = metadata['total_supply'] + amount

@export
def transfer(amount: float, to: str):
    assert amount > 0, "Transfer amount must be positive"
    sender = ctx.caller

    sender_bal = balances[sender]
    assert sender_bal >= amount, f"Insufficient balance for sender {sender}"

    balances[sender] = sender_bal - amount
    balances[to] += amount

    # Refund from the campaign to this contract: call claim again before it returns
    current_attempts = re_entry_attempt_count.get()
    target_campaign = re_entry_target_campaign_for_claim.get()

    if target_campaign and current_attempts < re_entry_max_attempts.get():
        if sender == target_campaign and to == ctx.this:
            re_entry_attempt_count.set(current_attempts + 1)
            campaign_contract = I.import_module(target_campaign)
            campaign_contract.claim()

    return True

@export
def approve(amount: float, to: str):
    assert amount >= 0, "Approve amount must be non-negative"
    balances[ctx.caller, to] = amount
    return True

@export
def transfer_from(amount: float, to: str, main_account: str):
    assert amount > 0, "Transfer amount must be positive"
    spender = ctx.caller

    owner_balance = balances[main_account]
    assert owner_balance >= amount, f"Insufficient balance for owner {main_account}"

    spender_allowance = balances[main_account, spender]
    assert spender_allowance >= amount, f"Insufficient allowance for spender {spender} from owner {main_account}"

    balances[main_account] = owner_balance - amount
    balances[main_account, spender] = spender_allowance - amount
    balances[to] += amount

    # Contribution pull by the campaign: fund again from inside the pull
    current_attempts = re_entry_attempt_count.get()
    target_campaign = re_entry_target_campaign_for_fund.get()
    re_fund_amount = re_entry_fund_amount.get()

    if target_campaign and re_fund_amount and current_attempts < re_entry_max_attempts.get():
        re_entry_attempt_count.set(current_attempts + 1)
        campaign_contract = I.import_module(target_campaign)
        campaign_contract.fund(amount=re_fund_amount)

    return True

@export
def balance_of(address: str):
    return balances[address]
