from skills_install import main

main()
