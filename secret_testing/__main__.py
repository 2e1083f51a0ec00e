from secret_testing.integration import main

main()
