from dotboot.run import main

main()
