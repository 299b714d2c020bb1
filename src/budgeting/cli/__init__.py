"""
Command Line Interface Package

Command Structure:
- budgeting: Main entry point with utility commands (version, config)
- budgeting receipts import: Fetch alert threads and record their receipts
- budgeting partitions: Catch the ledger up to today, list partitions
- budgeting split / split-checked: Split recorded transaction rows
"""
