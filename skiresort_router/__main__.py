from skiresort_router.cli import main

main()
