from crashround.main import main

main()
