from kvmctl.cli import run

run()
