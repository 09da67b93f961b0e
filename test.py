import unittest
from contracting.stdlib.bridge.decimal import ContractingDecimal as decimal
from contracting.client import ContractingClient
from pathlib import Path


class TestCrowdfundContract(unittest.TestCase):
    def setUp(self):
        self.client = ContractingClient()
        self.client.flush() # Ensures a clean state

        # Define user accounts
        self.operator = 'sys' # Deploys the token contract
        self.alice = 'alice' # Deploys the campaign, becomes its owner
        self.bob = 'bob'
        self.charlie = 'charlie'
        self.dave = 'dave' # Never contributes

        self.crowdfund_contract_name = "con_crowdfund"
        self.token_name = "con_campaign_token"

        contracts_dir = Path(__file__).resolve().parent

        with open(contracts_dir / "con_campaign_token.py") as f:
            self.client.submit(f.read(), name=self.token_name, signer=self.operator)

        with open(contracts_dir / "con_crowdfund.py") as f:
            self.client.submit(f.read(), name=self.crowdfund_contract_name, signer=self.alice)

        self.con_crowdfund = self.client.get_contract(self.crowdfund_contract_name)
        self.con_token = self.client.get_contract(self.token_name)

        # --- Token Distribution ---
        self.con_token.transfer(amount=decimal('1000000000000'), to=self.bob, signer=self.operator)
        self.con_token.transfer(amount=decimal('1000000000000'), to=self.charlie, signer=self.operator)

        # --- Approvals ---
        self.con_token.approve(amount=decimal('1000000000000'), to=self.crowdfund_contract_name, signer=self.bob)
        self.con_token.approve(amount=decimal('1000000000000'), to=self.crowdfund_contract_name, signer=self.charlie)

        # --- Campaign ---
        self.target = decimal('500000000000')
        self.deadline = 50
        self.con_crowdfund.change_metadata(key='token', value=self.token_name, signer=self.alice)
        self.con_crowdfund.initialize(
            target=self.target, deadline=self.deadline, description="Community garden",
            signer=self.alice, environment=self._at(0)
        )

    def tearDown(self):
        self.client.flush()

    def _at(self, height):
        return {"block_num": height}

    def _custody_balance(self):
        return self.con_token.balance_of(address=self.crowdfund_contract_name)

    def _assert_conservation(self, *contributors):
        info = self.con_crowdfund.get_campaign_info()
        recorded = sum(
            (self.con_crowdfund.get_contribution(account=c) for c in contributors),
            decimal('0')
        )
        self.assertEqual(info['raised'], recorded)
        if not info['settled']:
            self.assertEqual(self._custody_balance(), info['raised'])

    def test_initialized_campaign_is_open_with_nothing_raised(self):
        print("\n--- Test: Initialized Campaign ---")
        status = self.con_crowdfund.status(environment=self._at(0))
        self.assertTrue(status['active'])
        self.assertEqual(status['raised'], decimal('0'))

        info = self.con_crowdfund.get_campaign_info()
        self.assertEqual(info['owner'], self.alice)
        self.assertEqual(info['target'], self.target)
        self.assertEqual(info['deadline'], self.deadline)
        self.assertEqual(info['token'], self.token_name)
        self.assertFalse(info['settled'])
        self.assertIsNone(info['outcome'])

    def test_fund_accumulates_raised_total(self):
        print("\n--- Test: Fund Accumulates ---")
        self.con_crowdfund.fund(amount=decimal('200000000000'), signer=self.bob, environment=self._at(10))
        status = self.con_crowdfund.status(environment=self._at(10))
        self.assertTrue(status['active'])
        self.assertEqual(status['raised'], decimal('200000000000'))

        self.con_crowdfund.fund(amount=decimal('400000000000'), signer=self.charlie, environment=self._at(20))
        status = self.con_crowdfund.status(environment=self._at(20))
        self.assertEqual(status['raised'], decimal('600000000000'))
        self.assertGreaterEqual(status['raised'], self.target)

        self._assert_conservation(self.bob, self.charlie)

    def test_repeat_contributions_from_same_contributor(self):
        print("\n--- Test: Repeat Contributions ---")
        raised = decimal('0')
        for height, amount in ((1, '10'), (2, '25'), (3, '5')):
            self.con_crowdfund.fund(amount=decimal(amount), signer=self.bob, environment=self._at(height))
            raised += decimal(amount)
            self.assertEqual(self.con_crowdfund.status(environment=self._at(height))['raised'], raised)

        self.assertEqual(self.con_crowdfund.get_contribution(account=self.bob), decimal('40'))
        self._assert_conservation(self.bob)

    def test_owner_claims_when_target_met(self):
        print("\n--- Test: Owner Payout ---")
        self.con_crowdfund.fund(amount=decimal('200000000000'), signer=self.bob, environment=self._at(10))
        self.con_crowdfund.fund(amount=decimal('400000000000'), signer=self.charlie, environment=self._at(20))

        transfer = self.con_crowdfund.claim(signer=self.alice, environment=self._at(51))
        self.assertEqual(transfer['to'], self.alice)
        self.assertEqual(transfer['amount'], decimal('600000000000'))

        self.assertEqual(self.con_token.balance_of(address=self.alice), decimal('600000000000'))
        self.assertEqual(self._custody_balance(), decimal('0'))

        info = self.con_crowdfund.get_campaign_info()
        self.assertTrue(info['settled'])
        self.assertEqual(info['outcome'], "PAID_OUT")

        # Donor cannot pull a refund out of a successful campaign
        with self.assertRaisesRegex(AssertionError, "TargetMet"):
            self.con_crowdfund.claim(signer=self.bob, environment=self._at(52))
        self.assertEqual(self.con_token.balance_of(address=self.bob), decimal('800000000000'))

    def test_donor_refund_when_target_not_met(self):
        print("\n--- Test: Donor Refund ---")
        self.con_crowdfund.fund(amount=decimal('200000000000'), signer=self.bob, environment=self._at(10))

        transfer = self.con_crowdfund.claim(signer=self.bob, environment=self._at(51))
        self.assertEqual(transfer['to'], self.bob)
        self.assertEqual(transfer['amount'], decimal('200000000000'))

        self.assertEqual(self.con_token.balance_of(address=self.bob), decimal('1000000000000'))
        self.assertEqual(self.con_crowdfund.get_contribution(account=self.bob), decimal('0'))
        self.assertEqual(self._custody_balance(), decimal('0'))

        with self.assertRaisesRegex(AssertionError, "TargetNotMet"):
            self.con_crowdfund.claim(signer=self.alice, environment=self._at(51))
        self.assertEqual(self.con_token.balance_of(address=self.alice), decimal('0'))

    def test_second_refund_is_rejected(self):
        print("\n--- Test: Single Refund Per Donor ---")
        self.con_crowdfund.fund(amount=decimal('100'), signer=self.bob, environment=self._at(10))
        self.con_crowdfund.fund(amount=decimal('300'), signer=self.charlie, environment=self._at(11))

        self.con_crowdfund.claim(signer=self.bob, environment=self._at(60))
        self._assert_conservation(self.bob, self.charlie)

        with self.assertRaisesRegex(AssertionError, "NotEligible"):
            self.con_crowdfund.claim(signer=self.bob, environment=self._at(61))

        self.assertEqual(self.con_token.balance_of(address=self.bob), decimal('1000000000000'))
        self.assertEqual(self.con_crowdfund.status(environment=self._at(61))['raised'], decimal('300'))
        self.assertEqual(self._custody_balance(), decimal('300'))

    def test_fund_rejected_once_deadline_reached(self):
        print("\n--- Test: Closed Gate ---")
        self.con_crowdfund.fund(amount=decimal('100'), signer=self.bob, environment=self._at(10))

        for height in (self.deadline, self.deadline + 1, 1000):
            with self.assertRaisesRegex(AssertionError, "CampaignClosed"):
                self.con_crowdfund.fund(amount=decimal('100'), signer=self.charlie, environment=self._at(height))

        self.assertEqual(self.con_crowdfund.status(environment=self._at(1000))['raised'], decimal('100'))
        self.assertEqual(self.con_crowdfund.get_contribution(account=self.charlie), decimal('0'))
        self.assertEqual(self.con_token.balance_of(address=self.charlie), decimal('1000000000000'))

    def test_claim_rejected_while_open(self):
        print("\n--- Test: Open Gate ---")
        self.con_crowdfund.fund(amount=decimal('600000000000'), signer=self.bob, environment=self._at(10))

        for caller in (self.alice, self.bob, self.dave):
            with self.assertRaisesRegex(AssertionError, "CampaignStillActive"):
                self.con_crowdfund.claim(signer=caller, environment=self._at(self.deadline - 1))

        self.assertEqual(self._custody_balance(), decimal('600000000000'))
        self.assertFalse(self.con_crowdfund.get_campaign_info()['settled'])

    def test_zero_contribution_rejected(self):
        print("\n--- Test: Zero Contribution ---")
        with self.assertRaisesRegex(AssertionError, "ZeroValueContribution"):
            self.con_crowdfund.fund(amount=decimal('0'), signer=self.bob, environment=self._at(10))
        self.assertEqual(self.con_crowdfund.status(environment=self._at(10))['raised'], decimal('0'))

    def test_stranger_claim_not_eligible(self):
        print("\n--- Test: Unknown Caller ---")
        self.con_crowdfund.fund(amount=decimal('100'), signer=self.bob, environment=self._at(10))
        with self.assertRaisesRegex(AssertionError, "NotEligible"):
            self.con_crowdfund.claim(signer=self.dave, environment=self._at(51))

    def test_status_is_idempotent(self):
        print("\n--- Test: Idempotent Status ---")
        self.con_crowdfund.fund(amount=decimal('100'), signer=self.bob, environment=self._at(10))
        first = self.con_crowdfund.status(environment=self._at(12))
        second = self.con_crowdfund.status(environment=self._at(12))
        self.assertEqual(first, second)
        self.assertEqual(self.con_crowdfund.get_campaign_info()['raised'], decimal('100'))

        closed = self.con_crowdfund.status(environment=self._at(self.deadline))
        self.assertFalse(closed['active'])
        self.assertEqual(closed['raised'], decimal('100'))


if __name__ == '__main__':
    unittest.main()
