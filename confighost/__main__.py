from confighost.main import main

main()
