from subathon.main import main

main()
