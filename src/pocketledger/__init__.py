"""pocketledger: personal ledger with debts and shared-expense settlements."""

__version__ = "0.1.0"


# The CLI pulls in every service; only load it when asked for
def __getattr__(name):
    if name == "main":
        from pocketledger.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
