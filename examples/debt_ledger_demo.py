"""
Example: Confidential Debt Ledger

Records a few encrypted debts, computes encrypted net balances and reveals
one amount through a verified decryption.
"""

import asyncio

from dotenv import load_dotenv

load_dotenv()

from cipherledger import (  # noqa: E402
    ConfidentialLedger,
    EntryStatus,
    LedgerEventType,
    decode_uint,
    to_signed,
)


async def main():
    """
    Ledger example showing:
    1. Recording encrypted debts
    2. Computing encrypted net balances
    3. Revealing an amount with a decryption proof
    """
    print("=== CipherLedger Example ===\n")

    async with ConfidentialLedger() as ledger:
        gateway = ledger.gateway
        bits = ledger.config.amount_bits

        ledger.subscribe(
            lambda event: print(f"    event: {event.type.value} {event.data}"),
            LedgerEventType.DECRYPTION_VERIFIED,
        )

        # ========================================
        # Record debts (amounts never leave the client in clear)
        # ========================================
        print("--- Recording Debts ---")

        debts = [
            ("dinner", "alice", "bob", 100, "Dinner on Friday"),
            ("taxi", "carol", "alice", 30, "Taxi home"),
            ("tickets", "alice", "carol", 5, "Museum tickets"),
        ]
        for entry_id, creditor, debtor, amount, label in debts:
            sealed = gateway.encrypt_input(amount)
            await ledger.record_debt(
                entry_id, creditor, debtor, sealed.ciphertext, sealed.proof, label=label
            )
            print(f"  {debtor} owes {creditor}: <encrypted> ({label})")

        # ========================================
        # Compute encrypted balances
        # ========================================
        print("\n--- Net Balances ---")

        for participant_id in await ledger.get_all_participant_ids():
            balance = await ledger.compute_net_balance(participant_id)
            revealed = await gateway.public_decrypt(balance.balance_ciphertext)
            value = to_signed(decode_uint(revealed.cleartext, bits), bits)
            print(f"  {participant_id}: {balance.balance_ciphertext.short()} -> {value:+d}")

        # ========================================
        # Reveal one entry
        # ========================================
        print("\n--- Verified Decryption ---")

        handle = await ledger.get_encrypted_amount("dinner")
        result = await gateway.public_decrypt(handle)
        amount = await ledger.verify_decryption("dinner", result.cleartext, result.proof)
        print(f"  dinner revealed as {amount}")

        # ========================================
        # Summary
        # ========================================
        print("\n--- Summary ---")

        stats = await ledger.get_stats()
        print(f"  Entries: {stats.total_entries} ({stats.verified_entries} verified)")
        print(f"  Participants: {stats.participants}")

        for entry in await ledger.list_entries(EntryStatus.PENDING):
            print(f"    [pending] {entry.entry_id}: {entry.debtor} -> {entry.creditor}")

    print("\n=== Example Complete ===")


if __name__ == "__main__":
    asyncio.run(main())
