from cr_runner.cli import main

main()
