from refineflow.main import cli

cli()
