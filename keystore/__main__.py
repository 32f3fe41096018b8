from keystore.main import start

raise SystemExit(start())
