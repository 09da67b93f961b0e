balances = Hash(default_value=decimal('0.0'))
metadata = Hash()

@construct
def seed():
    initial_supply = decimal('10000000000000')
    balances[ctx.caller] = initial_supply
    metadata['token_name'] = "CAMPAIGN TOKEN"
    metadata['token_symbol'] = "CMP"
    metadata['total_supply'] = initial_supply
    metadata['operator'] = ctx.caller
    # Share of every transfer that never reaches the receiver, 0.05 means receiver gets 95%
    metadata['transfer_fee'] = decimal('0.0')

@export
def change_metadata(key: str, value: Any):
    assert ctx.caller == metadata['operator'], 'Only operator can set metadata!'
    metadata[key] = value

def received_after_fee(amount: float):
    return amount * (decimal('1.0') - metadata['transfer_fee'])

@export
def transfer(amount: float, to: str):
    assert amount > decimal('0.0'), 'Cannot transfer zero or negative!'
    sender = ctx.caller

    sender_bal = balances[sender]
    assert sender_bal >= amount, f'Transfer amount exceeds balance for sender {sender}!'

    balances[sender] = sender_bal - amount
    balances[to] += received_after_fee(amount)

@export
def approve(amount: float, to: str):
    assert amount >= decimal('0.0'), 'Cannot approve negative!'
    balances[ctx.caller, to] = amount

@export
def transfer_from(amount: float, to: str, main_account: str):
    assert amount > decimal('0.0'), 'Cannot transfer zero or negative!'
    spender = ctx.caller

    allowance = balances[main_account, spender]
    assert allowance >= amount, \
        f'Transfer amount {amount} exceeds allowance {allowance} for {main_account} by spender {spender}!'

    main_account_bal = balances[main_account]
    assert main_account_bal >= amount, f'Transfer amount {amount} exceeds balance {main_account_bal} for main_account {main_account}!'

    balances[main_account, spender] = allowance - amount
    balances[main_account] = main_account_bal - amount
    balances[to] += received_after_fee(amount)

@export
def balance_of(address: str):
    return balances[address]

@export
def allowance(owner: str, spender: str):
    return balances[owner, spender]
