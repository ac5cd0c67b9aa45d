from .case_runner import main

main()
