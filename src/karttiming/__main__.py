from karttiming.service import main

main()
