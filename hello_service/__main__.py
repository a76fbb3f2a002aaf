from hello_service.server import main

main()
