from autogazelle.cli import main

main()
