# ui.py
import asyncio
import datetime
import logging
import threading
import tkinter as tk
from tkinter import messagebox, simpledialog, filedialog

import ttkbootstrap as ttk

from catalog import CatalogIdle, CatalogLoading, CatalogLoaded, CatalogFailed
from models import CashierSystem
from utils import format_money, format_percent

logger = logging.getLogger("pos_system.ui")

# Map our theme names to ttkbootstrap theme names
BOOTSTRAP_THEMES = {
    "dark": "darkly",
    "light": "cosmo",
    "default": "cosmo"
}


class CashierUI:
    def __init__(self, config=None):
        self.config = config or {}
        self.sys = CashierSystem(config=self.config)
        self.currency = self.config.get("ui", {}).get("currency", "$")

        theme = self.config.get("ui", {}).get("theme", "default")
        self.root = ttk.Window(themename=BOOTSTRAP_THEMES.get(theme, "cosmo"))
        self.root.title("POS Checkout")
        self.root.geometry("1024x680")
        self.root.minsize(800, 500)

        self.qty_var = tk.IntVar(value=1)

        self._build_gui()

        self.sys.catalog.subscribe(self._on_catalog_state_threadsafe)
        self.sys.cart.subscribe(self._on_cart_state)
        self._load_catalog(self.config.get("catalog", {}).get("path", "assets/catalog.json"))

    def _build_gui(self):
        """Build the main GUI interface"""
        self._create_menu_bar()
        self._create_status_bar()

        main_frame = ttk.Frame(self.root)
        main_frame.pack(expand=True, fill='both', padx=10, pady=10)

        # Left section - catalog
        left_frame = ttk.Frame(main_frame)
        left_frame.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=5, pady=5)

        catalog_frame = ttk.LabelFrame(left_frame, text="Catalog", bootstyle="primary")
        catalog_frame.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)

        self.catalog_msg_var = tk.StringVar(value="")
        ttk.Label(catalog_frame, textvariable=self.catalog_msg_var, bootstyle="danger").pack(fill=tk.X, padx=5)

        cols = ("ID", "Name", "Price")
        self.catalog_tv = ttk.Treeview(catalog_frame, columns=cols, show='headings', height=15)
        self.catalog_tv.column("ID", width=60, anchor=tk.CENTER)
        self.catalog_tv.column("Name", width=180, anchor=tk.W)
        self.catalog_tv.column("Price", width=80, anchor=tk.E)
        for c in cols:
            self.catalog_tv.heading(c, text=c)
        self.catalog_tv.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)
        self.catalog_tv.bind("<Double-1>", lambda e: self._add_to_cart())

        add_frame = ttk.Frame(left_frame)
        add_frame.pack(fill=tk.X, padx=5, pady=5)
        ttk.Label(add_frame, text="Quantity:").pack(side=tk.LEFT, padx=5)
        ttk.Entry(add_frame, textvariable=self.qty_var, width=5).pack(side=tk.LEFT, padx=5)
        ttk.Button(add_frame, text="Add to Cart", command=self._add_to_cart, bootstyle="success").pack(side=tk.LEFT, padx=5)

        # Middle section - cart
        cart_frame = ttk.LabelFrame(main_frame, text="Shopping Cart", bootstyle="primary")
        cart_frame.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=5, pady=5)

        cols = ("Product", "Qty", "Price", "Discount", "Net")
        self.cart_tv = ttk.Treeview(cart_frame, columns=cols, show='headings', height=15)
        self.cart_tv.column("Product", width=160, anchor=tk.W)
        self.cart_tv.column("Qty", width=50, anchor=tk.CENTER)
        self.cart_tv.column("Price", width=80, anchor=tk.E)
        self.cart_tv.column("Discount", width=70, anchor=tk.E)
        self.cart_tv.column("Net", width=90, anchor=tk.E)
        for c in cols:
            self.cart_tv.heading(c, text=c)
        self.cart_tv.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)

        cart_btn_frame = ttk.Frame(cart_frame)
        cart_btn_frame.pack(fill=tk.X, padx=5, pady=5)
        ttk.Button(cart_btn_frame, text="Edit Qty", command=self._edit_cart_quantity, bootstyle="info").pack(side=tk.LEFT, padx=5)
        ttk.Button(cart_btn_frame, text="Discount", command=self._edit_cart_discount, bootstyle="info").pack(side=tk.LEFT, padx=5)
        ttk.Button(cart_btn_frame, text="Remove", command=self._remove_selected, bootstyle="danger").pack(side=tk.LEFT, padx=5)
        ttk.Button(cart_btn_frame, text="Clear Cart", command=self._clear_cart, bootstyle="warning").pack(side=tk.LEFT, padx=5)

        # Right section - totals and checkout
        checkout_frame = ttk.LabelFrame(main_frame, text="Checkout", bootstyle="primary")
        checkout_frame.pack(side=tk.RIGHT, fill=tk.Y, padx=5, pady=5, ipadx=10)

        self.total_vars = {}
        rows = (("subtotal", "Subtotal:"), ("discount", "Discount:"), ("vat", "VAT (15%):"))
        for row, (key, label) in enumerate(rows):
            ttk.Label(checkout_frame, text=label).grid(row=row, column=0, padx=5, pady=8, sticky=tk.W)
            self.total_vars[key] = tk.StringVar(value=format_money(0, self.currency))
            ttk.Label(checkout_frame, textvariable=self.total_vars[key], font=("Arial", 12)).grid(row=row, column=1, padx=5, pady=8, sticky=tk.E)

        ttk.Separator(checkout_frame, orient=tk.HORIZONTAL).grid(row=3, column=0, columnspan=2, sticky=tk.EW, padx=5, pady=5)
        ttk.Label(checkout_frame, text="TOTAL:", font=("Arial", 12, "bold")).grid(row=4, column=0, padx=5, pady=10, sticky=tk.W)
        self.total_vars["grand_total"] = tk.StringVar(value=format_money(0, self.currency))
        ttk.Label(checkout_frame, textvariable=self.total_vars["grand_total"], font=("Arial", 14, "bold")).grid(row=4, column=1, padx=5, pady=10, sticky=tk.E)

        self.items_var = tk.StringVar(value="0 items")
        ttk.Label(checkout_frame, textvariable=self.items_var).grid(row=5, column=0, columnspan=2, padx=5, pady=5)

        checkout_btn = ttk.Button(checkout_frame, text="CHECKOUT", command=self._checkout, bootstyle="success-outline")
        checkout_btn.grid(row=6, column=0, columnspan=2, padx=5, pady=20, sticky=tk.EW)

    def _create_menu_bar(self):
        """Create the application menu bar"""
        menubar = tk.Menu(self.root)
        self.root.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="Open Catalog...", command=self._open_catalog)
        file_menu.add_command(label="Reload Catalog", command=lambda: self._load_catalog(self._catalog_path))
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.root.quit)

    def _create_status_bar(self):
        """Create status bar at the bottom of the window"""
        status_bar = ttk.Frame(self.root, bootstyle="secondary")
        status_bar.pack(side=tk.BOTTOM, fill=tk.X)

        self.status_var = tk.StringVar(value="Ready")
        ttk.Label(status_bar, textvariable=self.status_var, padding=(5, 2), bootstyle="inverse-secondary").pack(side=tk.LEFT, fill=tk.X, expand=True)

        self.datetime_var = tk.StringVar()
        ttk.Label(status_bar, textvariable=self.datetime_var, padding=(5, 2), bootstyle="inverse-secondary").pack(side=tk.RIGHT)
        self._update_datetime()

    def _update_datetime(self):
        """Update the datetime display in status bar"""
        now = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self.datetime_var.set(now)
        self.root.after(1000, self._update_datetime)

    def _update_status(self, message):
        """Update status bar message"""
        self.status_var.set(message)
        logger.info(message)

    # Catalog
    def _load_catalog(self, path):
        """Run the catalog load on a worker thread with its own event loop."""
        self._catalog_path = path
        worker = threading.Thread(target=lambda: asyncio.run(self.sys.catalog.load(path)), daemon=True)
        worker.start()

    def _open_catalog(self):
        path = filedialog.askopenfilename(
            title="Open Catalog",
            filetypes=[("Catalog files", "*.json *.csv *.xlsx"), ("All files", "*.*")]
        )
        if path:
            self._load_catalog(path)

    def _on_catalog_state_threadsafe(self, state):
        # catalog states may arrive from the loader thread; tk is only touched from the main loop
        self.root.after(0, self._on_catalog_state, state)

    def _on_catalog_state(self, state):
        self.catalog_tv.delete(*self.catalog_tv.get_children())
        self.catalog_msg_var.set("")
        if isinstance(state, CatalogIdle):
            return
        if isinstance(state, CatalogLoading):
            self._update_status("Loading catalog...")
        elif isinstance(state, CatalogLoaded):
            for item in state.items:
                # duplicate ids keep the last row
                if self.catalog_tv.exists(item.id):
                    self.catalog_tv.delete(item.id)
                self.catalog_tv.insert("", "end", iid=item.id, values=(
                    item.id, item.name, format_money(item.price, self.currency)
                ))
            self._update_status(f"Catalog loaded: {len(state.items)} products")
        elif isinstance(state, CatalogFailed):
            self.catalog_msg_var.set(state.message)
            self._update_status(state.message)

    # Cart
    def _on_cart_state(self, state):
        """Re-render the cart table and totals from a cart snapshot."""
        self.cart_tv.delete(*self.cart_tv.get_children())
        for line in state.lines:
            self.cart_tv.insert("", "end", iid=line.item.id, values=(
                line.item.name,
                line.quantity,
                format_money(line.item.price, self.currency),
                format_percent(line.discount_percent),
                format_money(line.line_net, self.currency),
            ))
        for key, var in self.total_vars.items():
            var.set(format_money(getattr(state.totals, key), self.currency))
        self.items_var.set(f"{state.total_items} items")

    def _selected_cart_line(self):
        selected = self.cart_tv.selection()
        if not selected:
            messagebox.showinfo("Selection", "Please select a cart item first")
            return None
        _, line = self.sys.cart.state.find(selected[0])
        return line

    def _add_to_cart(self):
        """Add the selected catalog product to the cart"""
        selected = self.catalog_tv.selection()
        if not selected:
            messagebox.showwarning("Input Error", "Please select a product")
            return
        try:
            qty = self.qty_var.get()
        except tk.TclError:
            qty = 0
        if qty <= 0:
            messagebox.showwarning("Input Error", "Quantity must be greater than zero")
            return

        try:
            item = self.sys.add_by_id(selected[0], qty)
            self.qty_var.set(1)
            self._update_status(f"Added {qty} x {item.name} to cart")
        except (LookupError, ValueError) as e:
            messagebox.showerror("Error", str(e))
            logger.error(f"Error adding to cart: {e}")

    def _edit_cart_quantity(self):
        line = self._selected_cart_line()
        if line is None:
            return
        new_qty = simpledialog.askinteger("Edit Quantity", "Enter new quantity (0 removes):",
                                          initialvalue=line.quantity, minvalue=0)
        if new_qty is not None:
            self.sys.cart.change_qty(line.item.id, new_qty)
            self._update_status(f"Quantity of {line.item.name} set to {new_qty}")

    def _edit_cart_discount(self):
        line = self._selected_cart_line()
        if line is None:
            return
        percent = simpledialog.askfloat("Edit Discount", "Enter discount (%):",
                                        initialvalue=line.discount_percent * 100)
        if percent is not None:
            self.sys.cart.change_discount(line.item.id, percent / 100.0)
            self._update_status(f"Discount updated for {line.item.name}")

    def _remove_selected(self):
        """Remove selected items from cart"""
        selected = self.cart_tv.selection()
        if not selected:
            messagebox.showinfo("Selection", "Please select an item to remove")
            return
        for item_id in selected:
            self.sys.cart.remove_item(item_id)
        self._update_status("Item(s) removed from cart")

    def _clear_cart(self):
        """Clear all items from cart"""
        if self.sys.cart.state.is_empty:
            return
        if messagebox.askyesno("Clear Cart", "Are you sure you want to clear the cart?"):
            self.sys.cart.clear()
            self._update_status("Cart cleared")

    def _checkout(self):
        """Process checkout with current cart items"""
        if self.sys.cart.state.is_empty:
            messagebox.showinfo("Checkout", "Cart is empty")
            return
        try:
            receipt = self.sys.checkout()
        except (OSError, ValueError) as e:
            messagebox.showerror("Checkout Error", str(e))
            logger.error(f"Checkout error: {e}")
            return

        receipt_dir = self.config.get("receipt", {}).get("receipt_dir", "receipts")
        messagebox.showinfo("Checkout Complete",
                            f"Sale {receipt.header.receipt_number} completed.\n\n"
                            f"Total: {format_money(receipt.totals.grand_total, self.currency)}\n"
                            f"Receipt saved to {receipt_dir}")
        self._update_status(f"Checkout complete: {receipt.header.receipt_number}")

    def run(self):
        self.root.mainloop()
