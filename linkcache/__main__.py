from linkcache.cli import main

main()
