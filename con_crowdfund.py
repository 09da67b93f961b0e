I = importlib

campaign = Hash() # target, deadline, owner, token, description, raised, settled, outcome
contributions = Hash(default_value=decimal("0.0")) # contributor -> cumulative amount held in custody
metadata = Hash()

reentrancyGuardActive = Variable(default_value=False)

# Failure kinds, surfaced as the prefix of the assertion message
INVALID_CONFIGURATION = "InvalidConfiguration"
ZERO_VALUE_CONTRIBUTION = "ZeroValueContribution"
CAMPAIGN_CLOSED = "CampaignClosed"
CAMPAIGN_STILL_ACTIVE = "CampaignStillActive"
TARGET_NOT_MET = "TargetNotMet"
TARGET_MET = "TargetMet"
NOT_ELIGIBLE = "NotEligible"

ROLE_OWNER = "owner"
ROLE_DONOR = "donor"
ROLE_UNKNOWN = "unknown"

# Standard XSC001 (Fungible Token) interface
token_interface = [
    I.Func('transfer_from', args=('amount', 'to', 'main_account')),
    I.Func('transfer', args=('amount', 'to')),
    I.Func('balance_of', args=('address',)),
]

# Events
CampaignInitialized = LogEvent(
    event="campaign_initialized",
    params={
        "owner": {'type': str, 'idx': True},
        "token": {'type': str, 'idx': False},
        "description": {'type': str, 'idx': False},
        "target": {'type': (int, float, decimal)},
        "deadline": {'type': int},
    })

Funded = LogEvent(
    event="funded",
    params={
        "contributor": {'type': str, 'idx': True},
        "nominal_amount": {'type': (int, float, decimal)},
        "actual_amount_added": {'type': (int, float, decimal)},
        "contributor_total": {'type': (int, float, decimal)},
        "raised": {'type': (int, float, decimal)},
    })

PaidOut = LogEvent(
    event="paid_out",
    params={
        "owner": {'type': str, 'idx': True},
        "amount": {'type': (int, float, decimal)},
    })

Refunded = LogEvent(
    event="refunded",
    params={
        "contributor": {'type': str, 'idx': True},
        "amount": {'type': (int, float, decimal)},
        "raised": {'type': (int, float, decimal)},
    })

@construct
def seed():
    metadata['operator'] = ctx.caller
    metadata['token'] = 'currency'
    metadata['description_length'] = 200

    campaign['initialized'] = False
    campaign['raised'] = decimal("0.0")
    campaign['settled'] = False
    campaign['outcome'] = None
    reentrancyGuardActive.set(False)

@export
def change_metadata(key: str, value: Any):
    assert not reentrancyGuardActive.get(), "Campaign contract is busy, cannot change metadata now."
    assert ctx.caller == metadata['operator'], 'Only operator can set metadata!'
    metadata[key] = value

@export
def initialize(target: float, deadline: int, description: str):
    assert ctx.caller == metadata['operator'], 'Only operator can initialize the campaign!'
    assert not campaign['initialized'], f'{INVALID_CONFIGURATION}: campaign already initialized.'
    assert target > decimal("0.0"), f'{INVALID_CONFIGURATION}: target must be positive.'
    assert deadline > block_num, \
        f'{INVALID_CONFIGURATION}: deadline {deadline} must be after current block {block_num}.'
    assert len(description) <= metadata['description_length'], \
        f"{INVALID_CONFIGURATION}: description too long should be <{metadata['description_length']}"

    token = metadata['token']
    token_contract = I.import_module(token)
    assert I.enforce_interface(token_contract, token_interface), \
        f'{INVALID_CONFIGURATION}: token contract not XSC001-compliant'

    campaign['target'] = target
    campaign['deadline'] = deadline
    campaign['owner'] = ctx.caller
    campaign['token'] = token
    campaign['description'] = description
    campaign['initialized'] = True

    CampaignInitialized({
        "owner": ctx.caller,
        "token": token,
        "description": description,
        "target": target,
        "deadline": deadline
    })

def is_open():
    deadline = campaign['deadline']
    if deadline is None:
        return False
    return block_num < deadline

def assert_initialized():
    assert campaign['initialized'], 'campaign not initialized'

@export
def fund(amount: float):
    assert not reentrancyGuardActive.get(), "Campaign contract is busy, please try again."
    assert_initialized()
    assert amount > decimal("0.0"), f'{ZERO_VALUE_CONTRIBUTION}: contribution amount must be positive.'
    assert is_open(), f'{CAMPAIGN_CLOSED}: contribution window closed at block {campaign["deadline"]}.'

    reentrancyGuardActive.set(True)

    token_contract = I.import_module(campaign['token'])

    balance_before_transfer = token_contract.balance_of(ctx.this)
    if balance_before_transfer is None:
        balance_before_transfer = decimal("0.0")

    token_contract.transfer_from(
        amount=amount,
        to=ctx.this,
        main_account=ctx.caller
    )

    balance_after_transfer = token_contract.balance_of(ctx.this)
    if balance_after_transfer is None:
        balance_after_transfer = decimal("0.0")

    # Fee-on-transfer tokens deliver less than the nominal amount
    actual_amount_added = balance_after_transfer - balance_before_transfer
    assert actual_amount_added > decimal("0.0"), \
        f'{ZERO_VALUE_CONTRIBUTION}: no value reached the campaign.'

    contributions[ctx.caller] += actual_amount_added
    campaign['raised'] += actual_amount_added

    Funded({
        "contributor": ctx.caller,
        "nominal_amount": amount,
        "actual_amount_added": actual_amount_added,
        "contributor_total": contributions[ctx.caller],
        "raised": campaign['raised']
    })

    reentrancyGuardActive.set(False)

def classify(account: str):
    if account == campaign['owner']:
        return {"role": ROLE_OWNER, "amount": campaign['raised']}

    amount = contributions[account]
    if amount > decimal("0.0"):
        return {"role": ROLE_DONOR, "amount": amount}

    return {"role": ROLE_UNKNOWN, "amount": decimal("0.0")}

def settle(account: str):
    # Decides the claim and updates the ledger; returns the transfer to execute
    role = classify(account)
    target_met = campaign['raised'] >= campaign['target']

    if role["role"] == ROLE_OWNER:
        assert target_met, \
            f'{TARGET_NOT_MET}: raised {campaign["raised"]} is below target {campaign["target"]}.'
        assert not campaign['settled'], f'{NOT_ELIGIBLE}: campaign already paid out.'

        campaign['settled'] = True
        campaign['outcome'] = "PAID_OUT"

    elif role["role"] == ROLE_DONOR:
        assert not target_met, f'{TARGET_MET}: target reached, contributions go to the owner.'

        contributions[account] = decimal("0.0")
        campaign['raised'] -= role["amount"]
        campaign['outcome'] = "REFUNDING"
        if campaign['raised'] <= decimal("0.0"):
            campaign['settled'] = True

    else:
        assert False, f'{NOT_ELIGIBLE}: {account} has nothing to claim.'

    return {"to": account, "amount": role["amount"], "role": role["role"]}

@export
def claim():
    assert not reentrancyGuardActive.get(), "Campaign contract is busy, please try again."
    assert_initialized()
    assert not is_open(), \
        f'{CAMPAIGN_STILL_ACTIVE}: campaign accepts contributions until block {campaign["deadline"]}.'

    reentrancyGuardActive.set(True)

    transfer = settle(ctx.caller)

    if transfer["amount"] > decimal("0.0"):
        token_contract = I.import_module(campaign['token'])
        token_contract.transfer(
            amount=transfer["amount"],
            to=transfer["to"]
        )

    if transfer["role"] == ROLE_OWNER:
        PaidOut({"owner": transfer["to"], "amount": transfer["amount"]})
    else:
        Refunded({
            "contributor": transfer["to"],
            "amount": transfer["amount"],
            "raised": campaign['raised']
        })

    reentrancyGuardActive.set(False)
    return transfer

# --- Helper/View functions ---
@export
def status():
    return {"active": is_open(), "raised": campaign['raised']}

@export
def get_campaign_info():
    return {
        "target": campaign['target'],
        "deadline": campaign['deadline'],
        "owner": campaign['owner'],
        "token": campaign['token'],
        "description": campaign['description'],
        "raised": campaign['raised'],
        "settled": campaign['settled'],
        "outcome": campaign['outcome']
    }

@export
def get_contribution(account: str):
    return contributions[account]
