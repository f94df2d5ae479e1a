"""HTTP routers; each one turns form posts into controller intents."""
