from soundpost.cli import main

main()
