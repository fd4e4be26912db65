from card_photo_crop.app import main

main()
