from tabsniff.cli import main

main()
