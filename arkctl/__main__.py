from arkctl.main import cli

cli()
