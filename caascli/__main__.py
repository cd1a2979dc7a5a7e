from caascli.main import main

main()
