from legalstream.engine.cli import main

main()
